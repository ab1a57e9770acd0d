"""Custom exception classes for chain-deployments library."""

from typing import Optional

from .types import VerificationStatus


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class InvalidArgumentsError(DeploymentError, ValueError):
    """Raised when constructor arguments do not match the artifact's constructor."""

    pass


class ContractNotFoundError(DeploymentError, ValueError):
    """Raised when a contract name cannot be resolved to a compiled artifact."""

    pass


class ArtifactError(DeploymentError, ValueError):
    """Raised when an artifact or its build info is malformed."""

    pass


class DeployFailedError(DeploymentError, RuntimeError):
    """Raised when a deploy (or repoint) transaction reverted or was never mined."""

    pass


class VerificationFailedError(DeploymentError, RuntimeError):
    """
    Raised by verification clients that prefer exceptions over result values.

    The orchestrator downgrades it to a logged warning; it never reaches callers.
    """

    def __init__(self, message: str, status: VerificationStatus = VerificationStatus.PERMANENT):
        super().__init__(message)
        self.status = status


class NotAProxyError(DeploymentError, ValueError):
    """Raised when an upgrade target is not a recognized EIP-1967 proxy."""

    pass


class PartialUpgradeError(DeploymentError, RuntimeError):
    """
    Raised when a new implementation was deployed but the proxy repoint failed.

    Carries the orphaned implementation address so the repoint can be retried
    with DeploymentOrchestrator.complete_upgrade() without redeploying.
    """

    def __init__(
        self,
        proxy_address: str,
        implementation_address: str,
        reason: Optional[str] = None,
    ):
        message = (
            f"Implementation deployed at {implementation_address} but proxy "
            f"{proxy_address} was not repointed"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.proxy_address = proxy_address
        self.implementation_address = implementation_address


class StoreCorruptedError(DeploymentError, ValueError):
    """Raised when a stored deployment record cannot be parsed."""

    pass


class ConfigurationError(DeploymentError, ValueError):
    """Raised when deployment configuration is missing or invalid."""

    pass
