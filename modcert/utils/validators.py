"""Input sanitization and validation for callable payloads.

Primitive validators clean and bound-check single fields and raise
``ValidationError`` on the first violation. The per-resource assemblers
(``validate_module_input`` and friends) call them in a fixed field order,
so the first invalid field is the one reported.

``validate_resource`` wraps the assemblers for callers that prefer a
``ValidationResult`` value over an exception.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Optional

from modcert.config import DEFAULT_ALLOWED_DOMAINS
from modcert.errors import ValidationError

MAX_STRING_LENGTH = 10_000

VALIDATION_RULES: dict[str, dict[str, dict[str, int]]] = {
    "module": {
        "titleEn": {"min": 3, "max": 200},
        "titleDe": {"min": 3, "max": 200},
        "descriptionEn": {"min": 10, "max": 5000},
        "objectiveDe": {"min": 10, "max": 5000},
        "shortCode": {"min": 2, "max": 20},
        "dqsNumber": {"min": 1, "max": 50},
        "curriculum": {"max": 10000},
    },
    "course": {
        "name": {"min": 3, "max": 200},
        "description": {"min": 10, "max": 2000},
    },
    "certificationRound": {
        "name": {"min": 3, "max": 100},
        "description": {"max": 1000},
    },
    "comment": {
        "text": {"min": 1, "max": 2000},
    },
    "user": {
        "displayName": {"min": 2, "max": 100},
        "email": {"max": 254},  # RFC 5321
    },
}

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def sanitize_string(value: Any) -> str:
    """Trim, drop control characters and ``<script>`` blocks, cap the length.

    Anything that is not a string sanitizes to ``""``.
    """
    if not isinstance(value, str):
        return ""
    cleaned = value.strip()
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = _SCRIPT_TAG_RE.sub("", cleaned)
    return cleaned[:MAX_STRING_LENGTH]


def validate_length(
    value: Optional[str],
    min_len: int = 0,
    max_len: float = math.inf,
    field_name: str = "Field",
) -> None:
    length = len(value or "")
    if length < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    if length > max_len:
        raise ValidationError(f"{field_name} must not exceed {max_len} characters")


def validate_required(value: Any, field_name: str = "Field") -> str:
    sanitized = sanitize_string(value)
    if not sanitized:
        raise ValidationError(f"{field_name} is required and cannot be empty")
    return sanitized


def validate_optional(
    value: Any,
    min_len: int = 0,
    max_len: float = math.inf,
    field_name: str = "Field",
) -> Optional[str]:
    """Sanitize and bound-check an optional string; empty input yields None."""
    if not value:
        return None
    sanitized = sanitize_string(value)
    if not sanitized:
        return None
    validate_length(sanitized, min_len, max_len, field_name)
    return sanitized


def validate_number(
    value: Any,
    min_value: float = 0,
    max_value: float = math.inf,
    field_name: str = "Field",
) -> float | int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid number")
    if isinstance(value, int):
        num: float | int = value
    else:
        text = str(value).strip()
        if "_" in text:
            raise ValidationError(f"{field_name} must be a valid number")
        try:
            num = float(text)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} must be a valid number") from None
        if math.isnan(num) or math.isinf(num):
            raise ValidationError(f"{field_name} must be a valid number")
        if num.is_integer():
            num = int(num)

    if num < min_value or num > max_value:
        raise ValidationError(f"{field_name} must be between {min_value} and {max_value}")
    return num


def validate_date(value: Any, field_name: str = "Date") -> datetime:
    """Parse ISO-8601 strings, epoch milliseconds, dates and datetimes.

    Naive values are taken as UTC so results always compare.
    """
    if not value:
        raise ValidationError(f"{field_name} is required")

    parsed: Optional[datetime] = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            parsed = None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            parsed = None

    if parsed is None:
        raise ValidationError(f"{field_name} must be a valid date")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_enum(value: Any, allowed_values: Iterable[Any], field_name: str = "Field") -> Any:
    allowed = list(allowed_values)
    if value not in allowed:
        raise ValidationError(f"{field_name} must be one of: {', '.join(str(a) for a in allowed)}")
    return value


def validate_email(email: Any, allowed_domains: Optional[Iterable[str]] = None) -> str:
    """Normalize an address and check it against the domain allow-list."""
    if not email or not isinstance(email, str):
        raise ValidationError("Email is required")

    normalized = email.strip().lower()
    if not _EMAIL_RE.match(normalized):
        raise ValidationError("Invalid email format")
    validate_length(normalized, 0, VALIDATION_RULES["user"]["email"]["max"], "Email")

    domains = list(allowed_domains) if allowed_domains is not None else list(DEFAULT_ALLOWED_DOMAINS)
    domain = normalized.split("@", 1)[1]
    if domain not in domains:
        raise ValidationError(f"Email must be from allowed domains: {', '.join(domains)}")
    return normalized


# ---------------------------------------------------------------------------
# Per-resource assemblers
# ---------------------------------------------------------------------------


def _payload(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request data must be an object")
    return data


def validate_module_input(data: Any) -> dict[str, Any]:
    data = _payload(data)
    rules = VALIDATION_RULES["module"]

    def optional_number(key: str, lo: float, hi: float, label: str):
        return validate_number(data[key], lo, hi, label) if data.get(key) else None

    validated = {
        "titleEn": validate_required(data.get("titleEn"), "English Title"),
        "descriptionEn": validate_required(data.get("descriptionEn"), "English Description"),
        "shortCode": validate_optional(
            data.get("shortCode"), rules["shortCode"]["min"], rules["shortCode"]["max"], "Short Code"
        ),
        "dqsNumber": validate_optional(
            data.get("dqsNumber"), rules["dqsNumber"]["min"], rules["dqsNumber"]["max"], "DQS Number"
        ),
        "bkz": validate_optional(data.get("bkz"), 1, 50, "BKZ"),
        "pricePerUE": optional_number("pricePerUE", 0, 1_000_000, "Price per UE"),
        "pricePerModule": optional_number("pricePerModule", 0, 1_000_000, "Price per Module"),
        "ue45": optional_number("ue45", 1, 1000, "UE in 45 Min"),
        "weeks": optional_number("weeks", 1, 104, "Weeks"),
        "curriculum": validate_optional(data.get("curriculum"), 0, rules["curriculum"]["max"], "Curriculum"),
        "nrMab": validate_optional(data.get("nrMab"), 0, 50, "Nr MAB"),
        "certificate": validate_optional(data.get("certificate"), 0, 200, "Certificate"),
    }

    validate_length(validated["titleEn"], rules["titleEn"]["min"], rules["titleEn"]["max"], "English Title")
    validate_length(
        validated["descriptionEn"],
        rules["descriptionEn"]["min"],
        rules["descriptionEn"]["max"],
        "English Description",
    )
    return validated


def validate_course_input(data: Any) -> dict[str, Any]:
    data = _payload(data)
    rules = VALIDATION_RULES["course"]

    validated = {
        "name": validate_required(data.get("name"), "Course Name"),
        "description": validate_required(data.get("description"), "Course Description"),
    }

    validate_length(validated["name"], rules["name"]["min"], rules["name"]["max"], "Course Name")
    validate_length(
        validated["description"],
        rules["description"]["min"],
        rules["description"]["max"],
        "Course Description",
    )
    return validated


def validate_certification_round_input(data: Any) -> dict[str, Any]:
    data = _payload(data)
    rules = VALIDATION_RULES["certificationRound"]

    validated = {
        "name": validate_required(data.get("name"), "Round Name"),
        "description": validate_optional(data.get("description"), 0, rules["description"]["max"], "Description"),
        "startDate": validate_date(data.get("startDate"), "Start Date"),
        "dueDate": validate_date(data.get("dueDate"), "Due Date"),
    }

    validate_length(validated["name"], rules["name"]["min"], rules["name"]["max"], "Round Name")

    if validated["dueDate"] <= validated["startDate"]:
        raise ValidationError("Due date must be after start date")
    return validated


def validate_comment_input(data: Any) -> dict[str, Any]:
    data = _payload(data)
    rules = VALIDATION_RULES["comment"]

    validated = {
        "text": validate_required(data.get("text"), "Comment Text"),
        "moduleId": validate_required(data.get("moduleId"), "Module ID"),
    }

    validate_length(validated["text"], rules["text"]["min"], rules["text"]["max"], "Comment Text")
    return validated


def validate_user_input(data: Any, allowed_domains: Optional[Iterable[str]] = None) -> dict[str, Any]:
    data = _payload(data)
    rules = VALIDATION_RULES["user"]

    validated = {
        "email": validate_email(data.get("email"), allowed_domains),
        "displayName": validate_required(data.get("displayName"), "Display Name"),
        "role": validate_enum(data.get("role"), ["sysadmin", "programOwner", "operations"], "Role"),
    }

    validate_length(
        validated["displayName"],
        rules["displayName"]["min"],
        rules["displayName"]["max"],
        "Display Name",
    )
    return validated


# ---------------------------------------------------------------------------
# Result-returning entry point
# ---------------------------------------------------------------------------


@dataclass
class ValidationResult:
    """Outcome of ``validate_resource``: the record, or the first error."""

    ok: bool
    value: dict[str, Any] = field(default_factory=dict)
    error: Optional[ValidationError] = None

    @property
    def message(self) -> str:
        return self.error.message if self.error else ""


RESOURCE_VALIDATORS: dict[str, Callable[[Any], dict[str, Any]]] = {
    "module": validate_module_input,
    "course": validate_course_input,
    "certificationRound": validate_certification_round_input,
    "comment": validate_comment_input,
    "user": validate_user_input,
}


def validate_resource(resource_type: str, data: Any) -> ValidationResult:
    """Validate *data* as *resource_type* without raising on bad input."""
    try:
        validator = RESOURCE_VALIDATORS[resource_type]
    except KeyError:
        raise ValueError(f"Unknown resource type: {resource_type!r}") from None
    try:
        return ValidationResult(ok=True, value=validator(data))
    except ValidationError as exc:
        return ValidationResult(ok=False, error=exc)
