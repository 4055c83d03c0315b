"""Accessors for ``sui_getObject`` JSON responses."""
from __future__ import annotations

from typing import Any


def move_fields(raw: Any) -> dict[str, Any]:
    """Unwrap the ``{"type": ..., "fields": {...}}`` envelope of Move structs."""
    if isinstance(raw, dict):
        return raw.get("fields", raw)
    return {}


def object_fields(obj: dict[str, Any]) -> dict[str, Any]:
    """Fields of a ``sui_getObject`` response (or of its ``data`` member)."""
    data = obj.get("data", obj)
    return data.get("content", {}).get("fields", {})


def object_id(obj: dict[str, Any]) -> str:
    data = obj.get("data", obj)
    if data.get("objectId"):
        return data["objectId"]
    return move_fields(object_fields(obj).get("id", {})).get("id", "")


def object_type(obj: dict[str, Any]) -> str:
    return obj.get("data", obj).get("type", "")
