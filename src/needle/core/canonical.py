# src/needle/core/canonical.py
"""Deterministic JSON for document and label ids.

``normalize`` turns whatever a document may carry (text, a pandas table,
numpy embeddings, meta values) into plain JSON types; ``canonical_json``
serializes the result per RFC 8785 so key order never changes the bytes.

Non-finite floats are rejected rather than mapped to null: two documents
differing only by a NaN would otherwise share an id.
"""

from __future__ import annotations

import base64
import hashlib
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import numpy as np
import pandas as pd
import rfc8785


def _finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError(f"Cannot hash non-finite float {value!r}; use None for missing values")
    return value


def _embedding(array: np.ndarray) -> list[Any]:
    if array.dtype.kind in "fc" and array.size and not np.isfinite(array).all():
        raise ValueError("Cannot hash non-finite values inside an array; use None for missing values")
    return [normalize(item) for item in array.tolist()]


def _table(frame: pd.DataFrame) -> list[list[Any]]:
    # Header row, then one list per row
    rows = [[normalize(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]
    return [[str(column) for column in frame.columns], *rows]


def _instant(value: datetime) -> str:
    stamp = pd.Timestamp(value)
    stamp = stamp.tz_localize(UTC) if stamp.tz is None else stamp.tz_convert(UTC)
    return stamp.isoformat()


def normalize(obj: Any) -> Any:
    """Recursively convert ``obj`` to str/int/float/bool/None, lists and dicts.

    Raises:
        ValueError: On NaN or infinity anywhere in ``obj``
    """
    if obj is None or isinstance(obj, bool | str):
        return obj
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, int | np.integer):
        return int(obj)
    if isinstance(obj, float | np.floating):
        return _finite(float(obj))
    if obj is pd.NA or obj is pd.NaT:
        return None
    if isinstance(obj, datetime):
        return _instant(obj)
    if isinstance(obj, bytes):
        return {"__bytes__": base64.b64encode(obj).decode("ascii")}
    if isinstance(obj, np.ndarray):
        return _embedding(obj)
    if isinstance(obj, pd.DataFrame):
        return _table(obj)
    if isinstance(obj, Mapping):
        return {str(key): normalize(value) for key, value in obj.items()}
    if isinstance(obj, list | tuple):
        return [normalize(item) for item in obj]
    # rfc8785 raises TypeError for anything left over
    return obj


def canonical_json(obj: Any) -> str:
    """Serialize ``obj`` without whitespace and with sorted keys.

    Raises:
        ValueError: On non-finite floats
        TypeError: On values with no JSON form
    """
    encoded: bytes = rfc8785.dumps(normalize(obj))
    return encoded.decode("utf-8")


def stable_hash(obj: Any) -> str:
    """SHA-256 hex digest of ``canonical_json(obj)``."""
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()
