"""Controller revision annotations for Kubernetes objects."""

from __future__ import annotations

import json
import re
from collections.abc import MutableMapping
from typing import Any

CONTROLLER_REVISION_ANNOTATION = "network-operator/controller-revision"

_UINT32_MAX = 0xFFFFFFFF
_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193
_DIGITS = re.compile(r"[0-9]+")


class RevisionError(Exception):
    """Raised when a revision cannot be computed for an object."""


def _fnv1a32(data: bytes) -> int:
    value = _FNV32_OFFSET
    for byte in data:
        value = ((value ^ byte) * _FNV32_PRIME) & _UINT32_MAX
    return value


def calculate_revision(obj: Any) -> int:
    """Return the 32-bit FNV-1a hash of the object's JSON form."""
    try:
        encoded = json.dumps(
            obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise RevisionError(
            f"failed to compute controller revision for the object: {exc}"
        ) from exc
    return _fnv1a32(encoded)


def get_revision(obj: MutableMapping[str, Any]) -> int:
    """Return the revision stored on the object, or 0 if none is valid."""
    metadata = obj.get("metadata") or {}
    annotations = metadata.get("annotations") or {}
    value = annotations.get(CONTROLLER_REVISION_ANNOTATION, "")
    if not isinstance(value, str) or not _DIGITS.fullmatch(value):
        return 0
    number = int(value)
    return number if number <= _UINT32_MAX else 0


def set_revision(obj: MutableMapping[str, Any], revision: int) -> None:
    """Store the revision in the object's annotations."""
    if not 0 <= revision <= _UINT32_MAX:
        raise ValueError(f"revision out of range: {revision}")
    metadata = obj.get("metadata")
    if metadata is None:
        metadata = obj["metadata"] = {}
    annotations = metadata.get("annotations")
    if annotations is None:
        annotations = metadata["annotations"] = {}
    annotations[CONTROLLER_REVISION_ANNOTATION] = str(revision)