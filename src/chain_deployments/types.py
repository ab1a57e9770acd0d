"""Data types and dataclasses for chain-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import EPHEMERAL_CHAIN_IDS


@dataclass(frozen=True)
class NetworkContext:
    """Network a deployment targets."""

    network_id: int  # EIP-155 chain id
    is_ephemeral: bool = False  # Local simulation, no explorer

    @classmethod
    def from_chain_id(cls, chain_id: int) -> "NetworkContext":
        return cls(network_id=int(chain_id), is_ephemeral=int(chain_id) in EPHEMERAL_CHAIN_IDS)


@dataclass
class DeploymentRecord:
    """Persisted result of a deployment, one per network."""

    network_id: int
    contract_name: str
    address: str  # Checksummed; the proxy for proxy deployments
    implementation_address: Optional[str] = None  # Only set for proxy deployments
    constructor_args: List[Any] = field(default_factory=list)
    verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk field layout."""
        data: Dict[str, Any] = {
            "network_id": self.network_id,
            "contract_name": self.contract_name,
            "address": self.address,
            "constructor_args": list(self.constructor_args),
            "verified": self.verified,
        }
        if self.implementation_address is not None:
            data["implementation_address"] = self.implementation_address
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            network_id=int(data["network_id"]),
            contract_name=data["contract_name"],
            address=data["address"],
            implementation_address=data.get("implementation_address"),
            constructor_args=list(data.get("constructor_args", [])),
            verified=bool(data.get("verified", False)),
        )


@dataclass(frozen=True)
class ProxyHandle:
    """A stable proxy address paired with the implementation it delegates to."""

    address: str
    implementation_address: str
    previous_implementation_address: Optional[str] = None
    verified: bool = False


@dataclass(frozen=True)
class VerificationAttempt:
    """One submission to the verification service (logged, never stored)."""

    address: str
    artifact_path: str  # Fully qualified, e.g. "contracts/Market.sol:Market"
    constructor_args: List[Any]
    network_id: int


@dataclass(frozen=True)
class DeployResult:
    """Outcome of a mined deploy transaction."""

    address: str
    transaction_hash: str
    block_number: Optional[int] = None


class VerificationStatus(Enum):
    """
    Classification of a verification outcome.

    - VERIFIED: explorer accepted the source
    - ALREADY_VERIFIED: explorer already had matching source (counts as success)
    - TRANSIENT: worth retrying later (indexing lag, rate limits, network errors)
    - PERMANENT: retrying the same submission will not help
    """

    VERIFIED = "verified"
    ALREADY_VERIFIED = "already-verified"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class VerificationResult:
    """Result returned by a verification client."""

    status: VerificationStatus
    message: str = ""
    guid: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (VerificationStatus.VERIFIED, VerificationStatus.ALREADY_VERIFIED)


@dataclass
class Artifact:
    """Compiled contract (hardhat artifact format)."""

    contract_name: str
    source_name: str  # e.g. "contracts/Market.sol"
    abi: List[Dict[str, Any]]
    bytecode: str
    build_info_path: Optional[str] = None

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.contract_name}"

    def function_inputs(self, name: str) -> Optional[List[Dict[str, Any]]]:
        """Inputs of the named function, or None if the ABI has no such function."""
        for item in self.abi:
            if item.get("type") == "function" and item.get("name") == name:
                return item.get("inputs", [])
        return None

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return item.get("inputs", [])
        return []
