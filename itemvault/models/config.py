"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ASSET_URL = (
    "https://downloadfree3d.com/file/SpvSsnbLrrMfihGNItFf0WHOA5iEDueK5y3OdhFfG5c"
)
DEFAULT_RECORD_TYPE = "DataItems"


class VaultConfig(BaseModel):
    """A validated configuration model for the application."""

    # Remote asset
    asset_url: str = DEFAULT_ASSET_URL

    # Local storage
    documents_dir: str = ""
    data_dir: str = ""

    # Record store
    record_type: str = DEFAULT_RECORD_TYPE

    # Presentation
    open_viewer: bool = True

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("asset_url")
    @classmethod
    def validate_asset_url(cls, v: str) -> str:
        """Ensures the asset URL is an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Asset URL must start with http:// or https://.")
        return v

    @field_validator("record_type")
    @classmethod
    def validate_record_type(cls, v: str) -> str:
        """Record type names are plain identifiers."""
        if not v or not v.isidentifier():
            raise ValueError(f"Record type must be a plain identifier, got: '{v}'")
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_default_directories(cls, data: Any) -> Any:
        """Places unset storage directories under the configuration directory."""
        if isinstance(data, dict) and data.get("config_path"):
            data = dict(data)
            base = Path(data["config_path"])
            if not str(data.get("documents_dir") or "").strip():
                data["documents_dir"] = str(base / "documents")
            if not str(data.get("data_dir") or "").strip():
                data["data_dir"] = str(base / "store")
        return data

    @model_validator(mode="after")
    def validate_directories(self) -> "VaultConfig":
        """Staged payloads and the record store must not share a directory."""
        if self.documents_path.resolve() == self.data_path.resolve():
            raise ValueError("documents_dir and data_dir must be different directories.")
        return self

    @property
    def documents_path(self) -> Path:
        return Path(self.documents_dir).expanduser()

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
