import pytest

from dicomqr.config.schema import ConfigSchema
from dicomqr.errors import ConfigError
from dicomqr.servers import ServerList


def _cfg():
    return ConfigSchema.model_validate(
        {
            "calling_ae_title": "SCU",
            "storage": {"ae_title": "STORE", "port": 2000},
            "servers": [
                {"name": "A", "ae_title": "AE_A", "address": "a"},
                {"name": "B", "ae_title": "AE_B", "address": "b", "checked": False},
                {"name": "C", "ae_title": "AE_C", "address": "c"},
            ],
        }
    )


def test_from_config_keeps_order_and_checked_state():
    servers = ServerList.from_config(_cfg())
    assert [s.name for s in servers.servers] == ["A", "B", "C"]
    assert [s.name for s in servers.checked_servers()] == ["A", "C"]
    assert servers.calling_ae_title == "SCU"
    storage = servers.storage_params()
    assert (storage.move_destination, storage.calling_port) == ("STORE", 2000)


def test_node_parameters():
    servers = ServerList.from_config(_cfg())
    assert servers.node_parameters("B").ae_title == "AE_B"
    with pytest.raises(ConfigError):
        servers.node_parameters("Z")


def test_restrict_to_checks_only_named_servers():
    servers = ServerList.from_config(_cfg())
    servers.restrict_to(["B"])
    assert [s.name for s in servers.checked_servers()] == ["B"]
    assert len(servers.servers) == 3


def test_restrict_to_rejects_unknown_names():
    servers = ServerList.from_config(_cfg())
    with pytest.raises(ConfigError, match="Unknown server\\(s\\): X, Y"):
        servers.restrict_to(["A", "Y", "X"])
    assert [s.name for s in servers.checked_servers()] == ["A", "C"]
