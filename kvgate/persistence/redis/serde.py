from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

# JSON.GET / JSON.SET path addressing the whole document
ROOT_PATH = "."


def _default_handler(obj: Any) -> Any:
    """Handle the non-JSON types we accept at the document boundary"""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, datetime | date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, set | frozenset | tuple):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps_document(value: Any) -> str:
    """Serialize an opaque document (dict, list, scalar, BaseModel) for JSON.SET"""
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, ensure_ascii=False, default=_default_handler)


def loads_document(raw: str | bytes | None, model: type[BaseModel] | None = None) -> Any:
    """
    Deserialize a JSON.GET reply.

    Args:
        raw: Reply from Redis; None when the key does not exist
        model: Optional BaseModel class to validate the decoded document into

    Returns:
        Decoded document, or None if the key is absent
    """
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    data = json.loads(raw)
    if model is not None:
        return model.model_validate(data)
    return data
