"""
Pydantic models that mirror the YAML configuration consumed by *dicomqr*.

The rest of the code works with these validated objects instead of raw
dictionaries; the loader converts validation failures into
:class:`dicomqr.errors.ConfigError`.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from dicomqr.net.query import DEFAULT_QUERY_TAGS


def _check_ae_title(value: str) -> str:
    """AE titles are 1–16 characters and cannot be blank."""
    value = value.strip()
    if not value:
        raise ValueError("AE title cannot be empty")
    if len(value) > 16:
        raise ValueError(f"AE title {value!r} exceeds 16 characters")
    return value


class ServerEntry(BaseModel):
    """One remote node from the ``servers:`` list."""

    name: str = Field(..., min_length=1)
    ae_title: str
    address: str = Field(..., min_length=1)
    port: int = Field(104, ge=1, le=65535)
    checked: bool = True

    @field_validator("ae_title")
    @classmethod
    def _valid_ae_title(cls, value: str) -> str:
        return _check_ae_title(value)


class StorageEntry(BaseModel):
    """Local storage node receiving C-MOVE traffic."""

    ae_title: str = "DICOMQR_STORE"
    port: int = Field(11113, ge=1, le=65535)
    database: str = "~/.dicomqr/retrieved.sqlite"

    @field_validator("ae_title")
    @classmethod
    def _valid_ae_title(cls, value: str) -> str:
        return _check_ae_title(value)


class ToolsEntry(BaseModel):
    """How the dcm4che command-line tools are launched."""

    image: str = "dcm4che/dcm4che-tools:5.32.0"
    network: Optional[str] = "host"
    timeout: Optional[float] = Field(300.0, gt=0)


class ConfigSchema(BaseModel):
    """Top-level configuration document."""

    calling_ae_title: str = "DICOMQR"
    storage: StorageEntry = Field(default_factory=StorageEntry)
    tools: ToolsEntry = Field(default_factory=ToolsEntry)
    query_tags: List[str] = Field(default_factory=lambda: list(DEFAULT_QUERY_TAGS))
    servers: List[ServerEntry] = Field(default_factory=list)

    @field_validator("calling_ae_title")
    @classmethod
    def _valid_calling_ae_title(cls, value: str) -> str:
        return _check_ae_title(value)
