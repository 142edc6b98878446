"""
Immutable snapshot of everything the presentation layer renders.
"""

from dataclasses import dataclass
from enum import Enum

from .item import Item


class LoadStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class CatalogError:
    """A recoverable error reported by a catalog operation."""

    operation: str
    message: str
    error_type: str

    @classmethod
    def from_exception(cls, operation: str, error: Exception) -> "CatalogError":
        return cls(operation, str(error), type(error).__name__)


@dataclass(frozen=True)
class CatalogState:
    """
    The catalog's published state.

    The ``is_*`` flags are independent: several operations may be in flight at
    once, each raising its own flag.
    """

    items: tuple[Item, ...] = ()
    text: str = ""
    is_loading: bool = False
    is_adding: bool = False
    is_downloading: bool = False
    is_deleting: bool = False
    load_status: LoadStatus = LoadStatus.NOT_LOADED
    error: CatalogError | None = None

    @property
    def is_busy(self) -> bool:
        return (
            self.is_loading or self.is_adding or self.is_downloading or self.is_deleting
        )
