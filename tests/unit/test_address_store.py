"""Unit tests for the per-network address store."""

import json
from pathlib import Path

import pytest

from chain_deployments.exceptions import StoreCorruptedError
from chain_deployments.store import AddressStore
from chain_deployments.types import DeploymentRecord


def make_record(network_id: int = 31337, address: str = "0x" + "11" * 20, **kwargs) -> DeploymentRecord:
    return DeploymentRecord(
        network_id=network_id,
        contract_name=kwargs.pop("contract_name", "PredictionMarket"),
        address=address,
        **kwargs,
    )


class TestGet:
    """Test AddressStore.get()."""

    def test_returns_none_when_nothing_stored(self, address_store: AddressStore):
        assert address_store.get(1) is None

    def test_round_trips_a_record(self, address_store: AddressStore):
        record = make_record(constructor_args=["0xabc", 5], verified=True)
        address_store.put(31337, record)

        assert address_store.get(31337) == record

    def test_corrupted_file_raises(self, address_store: AddressStore, store_dir: Path):
        store_dir.mkdir(parents=True)
        (store_dir / "5-addresses.json").write_text("{ nope")

        with pytest.raises(StoreCorruptedError):
            address_store.get(5)

    def test_record_missing_fields_raises(self, address_store: AddressStore, store_dir: Path):
        store_dir.mkdir(parents=True)
        (store_dir / "5-addresses.json").write_text(json.dumps({"address": "0x1"}))

        with pytest.raises(StoreCorruptedError):
            address_store.get(5)


class TestPut:
    """Test AddressStore.put()."""

    def test_creates_store_directory(self, address_store: AddressStore, store_dir: Path):
        path = address_store.put(1, make_record(network_id=1))

        assert path == store_dir / "1-addresses.json"
        assert path.exists()

    def test_file_layout(self, address_store: AddressStore):
        """Test field names written for a direct deployment."""
        path = address_store.put(31337, make_record())

        with open(path) as f:
            data = json.load(f)
        assert data["address"] == "0x" + "11" * 20
        assert data["network_id"] == 31337
        assert data["verified"] is False
        assert "implementation_address" not in data

    def test_proxy_record_includes_implementation(self, address_store: AddressStore):
        path = address_store.put(1, make_record(network_id=1, implementation_address="0x" + "22" * 20))

        with open(path) as f:
            data = json.load(f)
        assert data["implementation_address"] == "0x" + "22" * 20

    def test_last_write_wins(self, address_store: AddressStore):
        address_store.put(1, make_record(network_id=1, address="0x" + "11" * 20))
        address_store.put(1, make_record(network_id=1, address="0x" + "33" * 20, contract_name="Other"))

        record = address_store.get(1)
        assert record.address == "0x" + "33" * 20
        assert record.contract_name == "Other"

    def test_networks_are_independent(self, address_store: AddressStore):
        address_store.put(1, make_record(network_id=1, address="0x" + "11" * 20))
        address_store.put(31337, make_record(network_id=31337, address="0x" + "22" * 20))

        assert address_store.get(1).address == "0x" + "11" * 20
        assert address_store.get(31337).address == "0x" + "22" * 20

    def test_leaves_no_temp_files(self, address_store: AddressStore, store_dir: Path):
        address_store.put(1, make_record(network_id=1))
        address_store.put(1, make_record(network_id=1))

        assert [p.name for p in store_dir.iterdir()] == ["1-addresses.json"]


class TestNetworks:
    """Test AddressStore.networks()."""

    def test_empty_when_directory_missing(self, address_store: AddressStore):
        assert address_store.networks() == []

    def test_lists_stored_networks(self, address_store: AddressStore, store_dir: Path):
        address_store.put(31337, make_record())
        address_store.put(1, make_record(network_id=1))
        (store_dir / "notes-addresses.json").write_text("{}")

        assert address_store.networks() == [1, 31337]
