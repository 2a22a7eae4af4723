"""
Server-list bookkeeping.

:class:`ServerConfigProvider` is the interface the orchestrator reads the
checked servers and local parameters from; :class:`ServerList` implements
it on top of the YAML configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from dicomqr.config.schema import ConfigSchema
from dicomqr.errors import ConfigError
from dicomqr.models import ServerDescriptor, StorageParams


class ServerConfigProvider(ABC):
    """Source of server descriptors and calling-side parameters."""

    @property
    @abstractmethod
    def calling_ae_title(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def checked_servers(self) -> List[ServerDescriptor]:
        """Return the checked servers in display order."""
        raise NotImplementedError

    @abstractmethod
    def node_parameters(self, name: str) -> ServerDescriptor:
        raise NotImplementedError

    @abstractmethod
    def storage_params(self) -> StorageParams:
        raise NotImplementedError


class ServerList(ServerConfigProvider):
    """In-memory server list.

    Args:
        servers: Descriptors in display order.
        calling_ae_title: Global calling AE title.
        storage: Local move destination and calling port.
    """

    def __init__(
        self,
        servers: Iterable[ServerDescriptor],
        calling_ae_title: str,
        storage: StorageParams,
    ) -> None:
        self._servers: List[ServerDescriptor] = list(servers)
        self._calling_ae_title = calling_ae_title
        self._storage = storage

    @classmethod
    def from_config(cls, cfg: ConfigSchema) -> "ServerList":
        servers = [
            ServerDescriptor(
                name=entry.name,
                address=entry.address,
                port=entry.port,
                ae_title=entry.ae_title,
                checked=entry.checked,
            )
            for entry in cfg.servers
        ]
        storage = StorageParams(
            move_destination=cfg.storage.ae_title,
            calling_port=cfg.storage.port,
        )
        return cls(servers, cfg.calling_ae_title, storage)

    @property
    def calling_ae_title(self) -> str:
        return self._calling_ae_title

    @property
    def servers(self) -> List[ServerDescriptor]:
        return list(self._servers)

    def checked_servers(self) -> List[ServerDescriptor]:
        return [s for s in self._servers if s.checked]

    def node_parameters(self, name: str) -> ServerDescriptor:
        """Return the descriptor registered under *name* (last entry wins)."""
        found: Dict[str, ServerDescriptor] = {s.name: s for s in self._servers}
        try:
            return found[name]
        except KeyError:
            raise ConfigError(f"Unknown server {name!r}") from None

    def storage_params(self) -> StorageParams:
        return self._storage

    def restrict_to(self, names: Iterable[str]) -> None:
        """Check exactly the servers named in *names*.

        Raises:
            ConfigError: If a name matches no configured server.
        """
        wanted = set(names)
        known = {s.name for s in self._servers}
        unknown = sorted(wanted - known)
        if unknown:
            raise ConfigError("Unknown server(s): " + ", ".join(unknown))
        self._servers = [
            ServerDescriptor(
                name=s.name,
                address=s.address,
                port=s.port,
                ae_title=s.ae_title,
                checked=s.name in wanted,
            )
            for s in self._servers
        ]
