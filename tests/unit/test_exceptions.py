"""Unit tests for custom exception classes."""

import pytest

from chain_deployments.exceptions import (
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
from chain_deployments.types import VerificationStatus


class TestExceptionCatching:
    """Test that exceptions can be caught as their base types."""

    def test_catch_invalid_arguments_as_value_error(self):
        """Test that InvalidArgumentsError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise InvalidArgumentsError("test")

    def test_catch_not_a_proxy_as_value_error(self):
        """Test that NotAProxyError can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise NotAProxyError("test")

    def test_catch_deploy_failed_as_runtime_error(self):
        """Test that DeployFailedError can be caught as RuntimeError."""
        with pytest.raises(RuntimeError):
            raise DeployFailedError("test")

    def test_catch_partial_upgrade_as_runtime_error(self):
        """Test that PartialUpgradeError can be caught as RuntimeError."""
        with pytest.raises(RuntimeError):
            raise PartialUpgradeError("0x1", "0x2")

    def test_catch_all_as_deployment_error(self):
        """Test that all custom exceptions can be caught as DeploymentError."""
        exceptions = [
            InvalidArgumentsError("test"),
            ContractNotFoundError("test"),
            ArtifactError("test"),
            DeployFailedError("test"),
            VerificationFailedError("test"),
            NotAProxyError("test"),
            PartialUpgradeError("0x1", "0x2"),
            StoreCorruptedError("test"),
            ConfigurationError("test"),
        ]

        for exc in exceptions:
            with pytest.raises(DeploymentError):
                raise exc


class TestExceptionPayloads:
    """Test data carried by exceptions."""

    def test_partial_upgrade_carries_addresses(self):
        """Test that PartialUpgradeError exposes the orphaned implementation."""
        exc = PartialUpgradeError("0xProxy", "0xImpl", "reverted")

        assert exc.proxy_address == "0xProxy"
        assert exc.implementation_address == "0xImpl"
        assert "0xImpl" in str(exc)
        assert "reverted" in str(exc)

    def test_verification_failed_defaults_to_permanent(self):
        """Test default classification of VerificationFailedError."""
        assert VerificationFailedError("x").status is VerificationStatus.PERMANENT

    def test_verification_failed_keeps_status(self):
        """Test that an explicit classification is kept."""
        exc = VerificationFailedError("rate limited", VerificationStatus.TRANSIENT)
        assert exc.status is VerificationStatus.TRANSIENT
        assert str(exc) == "rate limited"
