"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ItemVaultError(Exception):
    """Base exception for all application-specific errors."""


class NetworkError(ItemVaultError):
    """Raised when fetching the remote asset fails or returns a non-2xx response."""


class FilesystemError(ItemVaultError):
    """Raised when staging, reading, or materializing a local file fails."""


class RecordDecodeError(ItemVaultError):
    """
    Raised when a stored record lacks a required field or its asset cannot be
    resolved. Queries skip such records instead of aborting.
    """


class RecordStoreError(ItemVaultError):
    """Raised when a create, query, or delete against the record store fails."""


class RecordNotFoundError(RecordStoreError):
    """Raised when a record with the requested identifier does not exist."""


class InvalidNameError(ItemVaultError):
    """Raised when an item is added with an empty name."""


class InvalidSelectionError(ItemVaultError):
    """Raised when a list position does not point at a catalog item."""


class ConfigurationError(ItemVaultError):
    """Raised for issues related to configuration loading or validation."""
