from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def to_dto(row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """JSON-safe copy of a store row (money as float, timestamps as ISO strings)."""
    if not row:
        return {}
    out = {}
    for key, value in row.items():
        if key == "children":
            out[key] = [to_dto(child) for child in value]
        elif key == "items":
            out[key] = [to_dto(item) for item in value]
        else:
            out[key] = _plain(value)
    return out


def to_dtos(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [to_dto(r) for r in rows]
