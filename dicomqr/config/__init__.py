"""Configuration loading and validation for *dicomqr*."""

from .loader import load_config
from .schema import ConfigSchema, ServerEntry, StorageEntry, ToolsEntry

__all__ = ["load_config", "ConfigSchema", "ServerEntry", "StorageEntry", "ToolsEntry"]
