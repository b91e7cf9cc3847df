"""Shared helpers for the read-only persistence boundary."""

import uuid
from datetime import datetime
from typing import Any


def row_to_dict(row: Any) -> dict[str, Any]:
    """Convert a SQLAlchemy row to a dict, casting asyncpg types to JSON-safe primitives.

    asyncpg returns:
    - UUID columns as uuid.UUID objects → convert to str
    - TIMESTAMPTZ columns as datetime objects → convert to ISO-8601 str

    DATE columns stay ``datetime.date`` so hearing and deadline math stays
    date-only downstream.
    """
    d = dict(row._mapping)
    result = {}
    for k, v in d.items():
        if isinstance(v, uuid.UUID):
            result[k] = str(v)
        elif isinstance(v, datetime):
            result[k] = v.isoformat()
        else:
            result[k] = v
    return result
