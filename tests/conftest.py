"""Shared pytest fixtures for chain-deployments tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from eth_utils import to_checksum_address

from chain_deployments.artifacts import ArtifactStore
from chain_deployments.exceptions import DeployFailedError
from chain_deployments.orchestrator import DeploymentOrchestrator
from chain_deployments.store import AddressStore
from chain_deployments.types import (
    Artifact,
    DeployResult,
    VerificationResult,
    VerificationStatus,
)

ORACLE = "0xd0d5e3db44de05e9f294bb0a3beeaf030de24ada"
OPERATOR = "0x024d3242650d6c7b0ee6de408e33e803dbfb00ea"

MARKET_ABI = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_oracle", "type": "address", "internalType": "address"},
            {"name": "_operator", "type": "address", "internalType": "address"},
        ],
    },
    {
        "type": "function",
        "name": "latestConditionIndex",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

UPGRADEABLE_MARKET_ABI = [
    {
        "type": "function",
        "name": "initialize",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_oracle", "type": "address"},
            {"name": "_operator", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "upgradeToAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    },
]

PROXY_ABI = [
    {
        "type": "constructor",
        "stateMutability": "payable",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "_data", "type": "bytes"},
        ],
    }
]

BUILD_INFO = {
    "_format": "hh-sol-build-info-1",
    "id": "0a1b2c",
    "solcVersion": "0.8.20",
    "solcLongVersion": "0.8.20+commit.a1b79de6",
    "input": {
        "language": "Solidity",
        "sources": {"contracts/PredictionMarket.sol": {"content": "// SPDX-License-Identifier: MIT"}},
        "settings": {"optimizer": {"enabled": True, "runs": 200}},
    },
}


def write_artifact(
    root: Path,
    source_name: str,
    contract_name: str,
    abi: List[Dict[str, Any]],
    bytecode: str = "0x6080604052",
    build_info_id: Optional[str] = "0a1b2c",
) -> Path:
    """Write a hardhat-style artifact (+ .dbg.json) under root."""
    artifact_dir = root / source_name
    artifact_dir.mkdir(parents=True, exist_ok=True)
    path = artifact_dir / f"{contract_name}.json"
    with open(path, "w") as f:
        json.dump(
            {
                "_format": "hh-sol-artifact-1",
                "contractName": contract_name,
                "sourceName": source_name,
                "abi": abi,
                "bytecode": bytecode,
                "deployedBytecode": bytecode,
                "linkReferences": {},
                "deployedLinkReferences": {},
            },
            f,
        )

    if build_info_id is not None:
        depth = len(Path(source_name).parts)
        relative = "/".join([".."] * depth) + f"/build-info/{build_info_id}.json"
        with open(artifact_dir / f"{contract_name}.dbg.json", "w") as f:
            json.dump({"_format": "hh-sol-dbg-1", "buildInfo": relative}, f)
    return path


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """Hardhat artifacts tree with a plain, an upgradeable and a proxy contract."""
    root = tmp_path / "artifacts"
    write_artifact(root, "contracts/PredictionMarket.sol", "PredictionMarket", MARKET_ABI)
    write_artifact(
        root,
        "contracts/PredictionMarketUpgradeable.sol",
        "PredictionMarketUpgradeable",
        UPGRADEABLE_MARKET_ABI,
    )
    write_artifact(
        root,
        "contracts/PredictionMarketUpgradeable.sol",
        "PredictionMarketUpgradeableV2",
        UPGRADEABLE_MARKET_ABI,
    )
    write_artifact(
        root,
        "@openzeppelin/contracts/proxy/ERC1967/ERC1967Proxy.sol",
        "ERC1967Proxy",
        PROXY_ABI,
    )

    build_info_dir = root / "build-info"
    build_info_dir.mkdir(parents=True, exist_ok=True)
    with open(build_info_dir / "0a1b2c.json", "w") as f:
        json.dump(BUILD_INFO, f)
    return root


@pytest.fixture
def artifact_store(artifacts_dir: Path) -> ArtifactStore:
    return ArtifactStore(artifacts_dir)


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "deployments"


@pytest.fixture
def address_store(store_dir: Path) -> AddressStore:
    return AddressStore(store_dir)


class FakeBackend:
    """In-memory deployment backend handing out sequential addresses."""

    def __init__(self):
        self.deployments: List[Dict[str, Any]] = []
        self.implementations: Dict[str, str] = {}
        self.proxy_init_data: Dict[str, bytes] = {}
        self.repoints: List[tuple] = []
        self.fail_deploy = False
        self.fail_repoint = False
        self.fail_proxy = False
        self.repoint_error: Optional[Exception] = None  # raised as-is by repoint()
        self._counter = 0

    def _next_address(self) -> str:
        self._counter += 1
        return to_checksum_address(f"0x{self._counter:040x}")

    def deploy(self, artifact: Artifact, constructor_args: List[Any]) -> DeployResult:
        if self.fail_deploy:
            raise DeployFailedError(f"{artifact.contract_name} deployment reverted")
        address = self._next_address()
        self.deployments.append(
            {"contract": artifact.contract_name, "args": list(constructor_args), "address": address}
        )
        return DeployResult(address=address, transaction_hash="0x" + "ab" * 32, block_number=self._counter)

    def deploy_proxy(self, implementation_address: str, init_data: bytes) -> DeployResult:
        if self.fail_proxy:
            raise DeployFailedError("ERC1967Proxy deployment reverted")
        address = self._next_address()
        self.implementations[address] = implementation_address
        self.proxy_init_data[address] = init_data
        self.deployments.append(
            {"contract": "ERC1967Proxy", "args": [implementation_address, init_data], "address": address}
        )
        return DeployResult(address=address, transaction_hash="0x" + "cd" * 32, block_number=self._counter)

    def probe_proxy(self, address: str) -> bool:
        return address in self.implementations

    def get_implementation(self, proxy_address: str) -> str:
        return self.implementations[proxy_address]

    def repoint(self, proxy_address: str, implementation_address: str) -> str:
        if self.repoint_error is not None:
            raise self.repoint_error
        if self.fail_repoint:
            raise DeployFailedError(f"upgrade of {proxy_address} reverted")
        self.repoints.append((proxy_address, implementation_address))
        self.implementations[proxy_address] = implementation_address
        return "0x" + "ef" * 32


class StubVerifier:
    """Verification client returning a fixed result and recording calls."""

    def __init__(self, status: VerificationStatus = VerificationStatus.VERIFIED, message: str = ""):
        self.result = VerificationResult(status, message)
        self.calls: List[tuple] = []

    def submit(self, address: str, artifact_ref: str, constructor_args: List[Any]) -> VerificationResult:
        self.calls.append((address, artifact_ref, list(constructor_args)))
        return self.result


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
def failing_verifier() -> StubVerifier:
    return StubVerifier(VerificationStatus.PERMANENT, "Fail - Unable to verify")


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def orchestrator(backend, verifier, address_store, artifact_store, sleeps) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        backend,
        verifier,
        address_store,
        artifact_store,
        verification_delay_seconds=30,
        sleep=sleeps.append,
    )
