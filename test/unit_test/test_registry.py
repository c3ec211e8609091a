"""
Unit tests for the address registry
"""

import json
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_deployer.deploy.registry import AddressRegistry, RegistryStore
from dex_deployer.errors import ConfigurationError, ErrorCode, RegistryWriteError

DEPLOYER = "0x" + "de" * 20
FACTORY = "0x" + "11" * 20


def make_registry(network="sepolia", chain_id=11155111):
    return AddressRegistry(network=network, chain_id=chain_id, deployer=DEPLOYER)


def test_record_and_require():
    registry = make_registry()
    registry.record("FACTORY_ADDRESS", FACTORY)

    assert registry.require("FACTORY_ADDRESS") == FACTORY
    assert "FACTORY_ADDRESS" in registry
    assert registry.get("WETH_ADDRESS") is None


def test_require_missing_key():
    with pytest.raises(ConfigurationError) as exc:
        make_registry().require("POSITION_MANAGER_ADDRESS")
    assert exc.value.code == ErrorCode.CONFIG_MISSING
    assert "POSITION_MANAGER_ADDRESS" in str(exc.value)


def test_gaps():
    registry = make_registry()
    registry.add_gap("POSITION_DESCRIPTOR_ADDRESS")
    registry.add_gap("POSITION_DESCRIPTOR_ADDRESS")
    assert registry.gaps == ["POSITION_DESCRIPTOR_ADDRESS"]

    registry.clear_gap("POSITION_DESCRIPTOR_ADDRESS")
    assert registry.gaps == []


def test_save_and_load(tmp_path):
    store = RegistryStore(tmp_path)
    registry = make_registry()
    registry.record("FACTORY_ADDRESS", FACTORY)

    path = store.save(registry)

    assert path == tmp_path / "deployed-addresses-sepolia.json"
    data = json.loads(path.read_text())
    assert data["network"] == "sepolia"
    assert data["chainId"] == 11155111
    assert data["deployer"] == DEPLOYER
    assert data["contracts"] == {"FACTORY_ADDRESS": FACTORY}
    assert data["timestamp"]

    loaded = store.load("sepolia")
    assert loaded.contracts == registry.contracts
    assert loaded.chain_id == 11155111


def test_save_leaves_no_temp_or_lock_files(tmp_path):
    store = RegistryStore(tmp_path)
    store.save(make_registry())

    assert sorted(os.listdir(tmp_path)) == ["deployed-addresses-sepolia.json"]


def test_load_missing_returns_none(tmp_path):
    assert RegistryStore(tmp_path).load("sepolia") is None


def test_require_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        RegistryStore(tmp_path).require("sepolia")


def test_load_corrupt_file(tmp_path):
    store = RegistryStore(tmp_path)
    store.path_for("sepolia").write_text("{not json")

    with pytest.raises(RegistryWriteError) as exc:
        store.load("sepolia")
    assert exc.value.code == ErrorCode.REGISTRY_CORRUPT


def test_load_or_create_keeps_existing_entries(tmp_path):
    store = RegistryStore(tmp_path)
    registry = make_registry()
    registry.record("FACTORY_ADDRESS", FACTORY)
    store.save(registry)

    reloaded = store.load_or_create("sepolia", 11155111, DEPLOYER)
    assert reloaded.require("FACTORY_ADDRESS") == FACTORY


def test_load_or_create_chain_mismatch(tmp_path):
    store = RegistryStore(tmp_path)
    store.save(make_registry())

    with pytest.raises(ConfigurationError):
        store.load_or_create("sepolia", 1, DEPLOYER)


def test_failed_write_keeps_previous_file(tmp_path):
    """A failed replace leaves the last complete registry in place"""
    store = RegistryStore(tmp_path)
    registry = make_registry()
    registry.record("FACTORY_ADDRESS", FACTORY)
    store.save(registry)

    registry.record("WETH_ADDRESS", "0x" + "22" * 20)
    with patch("dex_deployer.deploy.registry.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(RegistryWriteError) as exc:
            store.save(registry)
    assert exc.value.code == ErrorCode.REGISTRY_WRITE_FAILED

    on_disk = store.load("sepolia")
    assert on_disk.contracts == {"FACTORY_ADDRESS": FACTORY}
    assert sorted(os.listdir(tmp_path)) == ["deployed-addresses-sepolia.json"]


def test_locked_registry(tmp_path):
    store = RegistryStore(tmp_path, lock_timeout=0.2)
    lock = tmp_path / "deployed-addresses-sepolia.json.lock"
    lock.write_text(str(os.getpid()))

    with pytest.raises(RegistryWriteError) as exc:
        store.save(make_registry())
    assert exc.value.code == ErrorCode.REGISTRY_LOCKED
    assert str(lock) in str(exc.value)
    assert lock.exists()
    assert not store.path_for("sepolia").exists()


def test_networks_use_separate_files(tmp_path):
    store = RegistryStore(tmp_path)
    store.save(make_registry("sepolia", 11155111))
    store.save(make_registry("localhost", 31337))

    assert store.load("sepolia").chain_id == 11155111
    assert store.load("localhost").chain_id == 31337


def test_forget_drops_address():
    registry = make_registry()
    registry.record("POSITION_DESCRIPTOR_ADDRESS", FACTORY)

    assert registry.forget("POSITION_DESCRIPTOR_ADDRESS") == FACTORY
    assert "POSITION_DESCRIPTOR_ADDRESS" not in registry
    assert registry.forget("POSITION_DESCRIPTOR_ADDRESS") is None


def test_stale_lock_is_broken(tmp_path):
    print("Testing stale registry lock...")

    store = RegistryStore(tmp_path, lock_timeout=0.2)
    lock = tmp_path / "deployed-addresses-sepolia.json.lock"
    lock.write_text("424242")

    with patch("dex_deployer.deploy.registry.os.kill", side_effect=ProcessLookupError):
        store.save(make_registry())

    assert store.load("sepolia").chain_id == 11155111
    assert not lock.exists()

    print("  Stale registry lock: PASSED")


def test_unwritten_lock_is_respected(tmp_path):
    """A lock whose holder has not written its pid yet is not stale"""
    store = RegistryStore(tmp_path, lock_timeout=0.2)
    (tmp_path / "deployed-addresses-sepolia.json.lock").write_text("")

    with pytest.raises(RegistryWriteError) as exc:
        store.save(make_registry())
    assert exc.value.code == ErrorCode.REGISTRY_LOCKED
