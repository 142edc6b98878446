"""
The catalog entry shown to the user, and its mapping from stored records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from itemvault.exceptions import RecordDecodeError

from .record import Asset, Record, RecordRef

NAME_FIELD = "name"
ASSET_FIELD = "dataFile"
FILE_TYPE_FIELD = "fileType"


@dataclass(frozen=True)
class Item:
    """A named asset backed by a record in the store."""

    name: str
    record_ref: RecordRef
    content_type: str | None = None
    asset_bytes: bytes | None = field(default=None, repr=False, compare=False)
    asset_local_path: Path | None = None
    created_at: datetime | None = None
    pending: bool = False

    @property
    def size(self) -> int | None:
        """Size of the in-memory payload, if one is held."""
        return len(self.asset_bytes) if self.asset_bytes is not None else None

    @classmethod
    def from_record(cls, record: Record) -> "Item":
        """
        Decodes a stored record into an item without reading its asset bytes.

        Raises:
            RecordDecodeError: If the name is missing or not a string, or the
            asset reference is missing.
        """
        name = record[NAME_FIELD]
        if not isinstance(name, str) or not name:
            raise RecordDecodeError(f"Record '{record.ref}' has no usable name.")

        asset = record[ASSET_FIELD]
        if not isinstance(asset, Asset):
            raise RecordDecodeError(f"Record '{record.ref}' has no asset reference.")

        file_type = record[FILE_TYPE_FIELD]
        return cls(
            name=name,
            record_ref=record.ref,
            content_type=file_type if isinstance(file_type, str) else None,
            asset_local_path=asset.file_path,
            created_at=record.creation_date,
        )
