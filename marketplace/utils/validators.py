from typing import Any, Optional

from ..errors import ValidationError


def require_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(field, "is required")
    return text


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(field, "must be an integer")
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(field, "must be an integer") from exc
