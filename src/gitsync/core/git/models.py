"""
Value types exchanged with the git layer.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter

T = TypeVar("T")


@dataclass(frozen=True)
class Commit:
    """
    One entry of a one-line log.

    Attributes:
        revision: Full commit id
        message: First line of the commit message
    """

    revision: str
    message: str


@dataclass(frozen=True)
class CommitAction:
    """
    Input to a commit transaction.

    Attributes:
        message: Commit message, used verbatim (the skip suffix is added by
                 the checkout)
        author: Optional "Name <email>" override for this commit only
    """

    message: str
    author: str | None = None


@dataclass(frozen=True)
class Remote:
    """The upstream a checkout pushes to and fetches from."""

    url: str


def encode_note(note: Any) -> str:
    """Serialize a note payload to JSON."""
    if isinstance(note, BaseModel):
        return note.model_dump_json()
    return json.dumps(note)


def decode_note(raw: str, note_type: type[T] | None = None) -> T | Any:
    """
    Deserialize a note payload.

    Args:
        raw: JSON text as stored in the notes ref.
        note_type: Optional type to validate into (a pydantic model, a
                   dataclass, a TypedDict...). Plain JSON values otherwise.
    """
    if note_type is None:
        return json.loads(raw)
    return TypeAdapter(note_type).validate_json(raw)
