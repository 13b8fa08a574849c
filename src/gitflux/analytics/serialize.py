"""Convert analytics results into JSON-ready structures."""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


def to_jsonable(value: Any, float_digits: Optional[int] = None) -> Any:
    """Recursively convert dataclasses, enums, dates and sets.

    Args:
        value: Result object (or any nested part of one)
        float_digits: Round floats for presentation; stored values stay unrounded

    Properties such as ``HeatmapResult.active_days`` are not included; only
    dataclass fields are.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name), float_digits) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v, float_digits) for k, v in value.items()}
    if isinstance(value, (frozenset, set)):
        return sorted(to_jsonable(v, float_digits) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v, float_digits) for v in value]
    if isinstance(value, float) and float_digits is not None:
        return round(value, float_digits)
    return value


def to_json(value: Any, float_digits: Optional[int] = 1) -> str:
    return json.dumps(to_jsonable(value, float_digits), indent=2)
