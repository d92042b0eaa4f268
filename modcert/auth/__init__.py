"""Authentication, authorization and caller identity."""
