"""
Data structures for schemaless records as they travel to and from the record store.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class RecordRef:
    """Opaque, stable identifier of a stored record."""

    record_name: str

    @classmethod
    def new(cls) -> "RecordRef":
        """Generates a fresh client-side identifier."""
        return cls(uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.record_name


@dataclass(frozen=True)
class Asset:
    """
    A reference to a binary payload stored outside the record itself.

    On save, the store uploads the file at ``file_path``. On read, ``file_path``
    points at the store's local copy.
    """

    file_path: Path


@dataclass
class Record:
    """A key/value bag of a named record type."""

    record_type: str
    ref: RecordRef = field(default_factory=RecordRef.new)
    fields: dict[str, Any] = field(default_factory=dict)
    creation_date: datetime | None = None

    def __getitem__(self, key: str) -> Any:
        return self.fields.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.fields[key] = value
