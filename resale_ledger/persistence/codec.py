from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class DocumentCodecError(ValueError):
    pass


def _iso_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_document_obj(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): to_document_obj(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document_obj(v) for v in value]
    if isinstance(value, Enum):
        return to_document_obj(value.value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return _iso_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise DocumentCodecError(f"non-finite decimal is not storable: {value}")
        return format(value, "f")
    if isinstance(value, float):
        raise DocumentCodecError("float values are not allowed in documents; use Decimal")
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if hasattr(value, "to_document"):
        return to_document_obj(value.to_document())
    if hasattr(value, "model_dump"):
        return to_document_obj(value.model_dump())
    raise DocumentCodecError(f"unsupported document type: {type(value)!r}")


def merge_documents(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = value
    return merged
