"""Shared hashing helpers for audit correlation."""

from __future__ import annotations

import json
from hashlib import sha256
from typing import Any

from pydantic import BaseModel


def stable_hash(payload: Any) -> str:
    """SHA-256 of the canonical (sorted-key) JSON form of a payload."""
    return sha256(
        json.dumps(payload, sort_keys=True, default=str, separators=(",", ":")).encode("utf-8")
    ).hexdigest()


def snapshot_fingerprint(snapshot: BaseModel | None) -> str | None:
    """Fingerprint a case snapshot so a failed run can be matched to its input."""
    if snapshot is None:
        return None
    return stable_hash(snapshot.model_dump(mode="json"))
