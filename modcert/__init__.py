"""modcert: auth and input governance for the module certification backend.

Authentication, role checks, the active-round mutation gate, ownership
checks, input validation, abuse guarding and audit logging for the
callable functions in ``modcert.functions``.
"""

__version__ = "0.1.0"
