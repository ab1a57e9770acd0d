"""
chain-deployments: deploy, verify, persist and upgrade smart contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import ArtifactStore
from .backend import Web3Backend
from .config import DeployConfig
from .exceptions import (
    ArtifactError,
    ConfigurationError,
    ContractNotFoundError,
    DeployFailedError,
    DeploymentError,
    InvalidArgumentsError,
    NotAProxyError,
    PartialUpgradeError,
    StoreCorruptedError,
    VerificationFailedError,
)
from .orchestrator import DeploymentOrchestrator
from .store import AddressStore
from .types import (
    DeploymentRecord,
    NetworkContext,
    ProxyHandle,
    VerificationResult,
    VerificationStatus,
)
from .verification import EtherscanVerifier

try:
    __version__ = version("chain-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentOrchestrator",
    "AddressStore",
    "ArtifactStore",
    "Web3Backend",
    "EtherscanVerifier",
    "DeployConfig",
    "DeploymentRecord",
    "NetworkContext",
    "ProxyHandle",
    "VerificationResult",
    "VerificationStatus",
    "DeploymentError",
    "InvalidArgumentsError",
    "ContractNotFoundError",
    "ArtifactError",
    "DeployFailedError",
    "VerificationFailedError",
    "NotAProxyError",
    "PartialUpgradeError",
    "StoreCorruptedError",
    "ConfigurationError",
]
