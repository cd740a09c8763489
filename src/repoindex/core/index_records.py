"""
Index record models and JSON-line serialization.

Every unit produces five index streams. Four of them wrap each payload in
a common envelope tagged with the index name and record kind; typesinfo
lines are the bare payload.
"""

import json
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Optional


class IndexKind(str, Enum):
    """
    Index streams produced for every repository unit.

    Inherits from str so values can be used directly in paths and JSON.
    """
    TOKENS = "tokens"
    META = "meta"
    SOURCES = "sources"
    TYPESINFO = "typesinfo"
    COMMENTS = "comments"


# Record kind written into the envelope for each enveloped index.
RECORD_KINDS: dict[IndexKind, str] = {
    IndexKind.TOKENS: "typereference",
    IndexKind.META: "filemetadata",
    IndexKind.SOURCES: "sourcefile",
    IndexKind.COMMENTS: "documentation",
}


@dataclass
class SourceFileRecord:
    """Source content of one file, keyed by repository and location."""

    repo_id: int
    file_location: Optional[str]
    file_content: Any


@dataclass
class DocumentationRecord:
    """Documentation comments of one file."""

    repo_id: int
    file_location: Optional[str]
    comments: Any


def to_jsonable(payload: Any) -> Any:
    """
    Convert a payload into something json.dumps accepts.

    Dataclasses are converted with asdict, objects exposing to_dict() use
    it, enums collapse to their value, and sets become sorted lists.
    Everything else is returned unchanged.
    """
    if is_dataclass(payload) and not isinstance(payload, type):
        return asdict(payload)
    to_dict = getattr(payload, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(payload, Enum):
        return payload.value
    if isinstance(payload, (set, frozenset)):
        return sorted(payload, key=str)
    return payload


def _json_default(value: Any) -> Any:
    converted = to_jsonable(value)
    if converted is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return converted


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default, ensure_ascii=False)


def to_index_record_json(
    index_name: str,
    record_kind: str,
    payload: Any,
    file_location: Optional[str] = None,
) -> str:
    """
    Serialize a payload inside the common index envelope.

    Args:
        index_name: Index family the record belongs to (e.g. "java")
        record_kind: Kind of record (e.g. "typereference")
        payload: Opaque structured payload
        file_location: Optional file the record was derived from

    Returns:
        A single JSON line without the trailing newline.

    Raises:
        TypeError: If the payload cannot be serialized
    """
    return _dumps(
        {
            "index": index_name,
            "type": record_kind,
            "file_location": file_location,
            "payload": to_jsonable(payload),
        }
    )


def to_bare_json(payload: Any) -> str:
    """Serialize a payload without the envelope (typesinfo lines)."""
    return _dumps(to_jsonable(payload))
