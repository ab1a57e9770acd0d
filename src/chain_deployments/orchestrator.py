"""Deploy/verify/persist and proxy upgrade workflows for chain-deployments library."""

import dataclasses
import logging
import time
from typing import Any, Callable, List, Optional, Protocol

from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from .artifacts import ArtifactStore, encode_arguments, validate_arguments
from .constants import DEFAULT_VERIFICATION_DELAY_SECONDS, INITIALIZER_NAME
from .exceptions import (
    DeployFailedError,
    InvalidArgumentsError,
    NotAProxyError,
    PartialUpgradeError,
    VerificationFailedError,
)
from .store import AddressStore
from .types import (
    Artifact,
    DeploymentRecord,
    DeployResult,
    NetworkContext,
    ProxyHandle,
    VerificationAttempt,
    VerificationResult,
    VerificationStatus,
)

logger = logging.getLogger(__name__)


class DeploymentBackend(Protocol):
    def deploy(self, artifact: Artifact, constructor_args: List[Any]) -> DeployResult: ...

    def deploy_proxy(self, implementation_address: str, init_data: bytes) -> DeployResult: ...

    def probe_proxy(self, address: str) -> bool: ...

    def get_implementation(self, proxy_address: str) -> str: ...

    def repoint(self, proxy_address: str, implementation_address: str) -> str: ...


class VerificationClient(Protocol):
    def submit(self, address: str, artifact_ref: str, constructor_args: List[Any]) -> VerificationResult: ...


def encode_initializer(artifact: Artifact, args: List[Any]) -> bytes:
    """Calldata for artifact.initialize(*args), or b"" if it has no initializer and no args."""
    inputs = artifact.function_inputs(INITIALIZER_NAME)
    if inputs is None:
        if args:
            raise InvalidArgumentsError(
                f"{artifact.contract_name} has no {INITIALIZER_NAME}() to receive proxy arguments"
            )
        return b""

    types = ",".join(i["type"] for i in inputs)
    selector = function_signature_to_4byte_selector(f"{INITIALIZER_NAME}({types})")
    return selector + encode_arguments(inputs, args)


class DeploymentOrchestrator:
    """
    Drives deploy -> verify -> persist, and proxy upgrades.

    The orchestrator is the only writer to the address store. Deploy
    transactions are never retried; verification is attempted once and its
    failure is logged, not raised.
    """

    def __init__(
        self,
        backend: DeploymentBackend,
        verifier: Optional[VerificationClient],
        store: AddressStore,
        artifacts: ArtifactStore,
        verification_delay_seconds: float = DEFAULT_VERIFICATION_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            backend: Deployment backend (e.g. Web3Backend)
            verifier: Verification client; None disables verification everywhere
            store: Address store receiving one record per network
            artifacts: Artifact store resolving contract names
            verification_delay_seconds: Default wait before verification
            sleep: Injected for tests
        """
        self.backend = backend
        self.verifier = verifier
        self.store = store
        self.artifacts = artifacts
        self.verification_delay_seconds = verification_delay_seconds
        self._sleep = sleep

    def _resolve(self, contract_name: str, artifact_path: Optional[str]) -> Artifact:
        return self.artifacts.resolve(artifact_path or contract_name)

    def _probe(self, proxy_address: str) -> str:
        """Checksummed proxy address, or NotAProxyError if the backend does not recognize it."""
        if not is_address(proxy_address) or not self.backend.probe_proxy(to_checksum_address(proxy_address)):
            raise NotAProxyError(f"{proxy_address} is not a recognized proxy")
        return to_checksum_address(proxy_address)

    @staticmethod
    def _check_implementation(artifact: Artifact) -> None:
        # Implementations are deployed bare; their constructor never sees arguments
        if artifact.constructor_inputs:
            raise InvalidArgumentsError(
                f"{artifact.contract_name} cannot be used as a proxy implementation: "
                "its constructor takes arguments"
            )

    def _verify(
        self,
        attempt: VerificationAttempt,
        network: NetworkContext,
        delay: Optional[float],
    ) -> bool:
        """Run the single verification attempt; True only if the explorer accepted it."""
        if network.is_ephemeral or self.verifier is None:
            logger.info("Skipping verification of %s on network %s", attempt.address, network.network_id)
            return False

        delay = self.verification_delay_seconds if delay is None else delay
        if delay > 0:
            logger.info("Waiting %ss for the explorer to index %s", delay, attempt.address)
            self._sleep(delay)

        try:
            result = self.verifier.submit(
                attempt.address, attempt.artifact_path, attempt.constructor_args
            )
        except VerificationFailedError as e:
            result = VerificationResult(e.status, str(e))
        except Exception as e:
            # Contract is already deployed: client errors are logged, never raised
            result = VerificationResult(VerificationStatus.TRANSIENT, f"{type(e).__name__}: {e}")

        if result.ok:
            if result.status is VerificationStatus.ALREADY_VERIFIED:
                logger.info("%s at %s was already verified", attempt.artifact_path, attempt.address)
            else:
                logger.info("Verified %s at %s", attempt.artifact_path, attempt.address)
            return True

        logger.warning(
            "Verification of %s at %s on network %s failed (%s): %s",
            attempt.artifact_path,
            attempt.address,
            attempt.network_id,
            result.status.value,
            result.message,
        )
        return False

    def deploy_and_verify(
        self,
        contract_name: str,
        constructor_args: List[Any],
        network: NetworkContext,
        artifact_path: Optional[str] = None,
        verification_delay_seconds: Optional[float] = None,
        proxy: bool = False,
    ) -> DeploymentRecord:
        """
        Deploy a contract, verify it on non-ephemeral networks and store the result.

        Calling this twice deploys two contracts; only the second is kept in
        the store.

        Args:
            contract_name: Artifact contract name
            constructor_args: Constructor arguments, or initializer arguments
                              when proxy is True
            network: Target network
            artifact_path: Fully qualified artifact name, e.g.
                           "contracts/Market.sol:Market" (defaults to the
                           resolved artifact's name)
            verification_delay_seconds: Override of the pre-verification wait
            proxy: Deploy behind an ERC1967Proxy and call initialize(args)

        Returns:
            The stored DeploymentRecord

        Raises:
            ContractNotFoundError: Unknown contract name
            InvalidArgumentsError: Argument arity/type mismatch
            DeployFailedError: Deploy transaction failed (nothing is stored)
        """
        artifact = self._resolve(contract_name, artifact_path)
        artifact_ref = artifact_path or artifact.fully_qualified_name

        if proxy:
            self._check_implementation(artifact)
            inputs = artifact.function_inputs(INITIALIZER_NAME) or []
            args = validate_arguments(inputs, list(constructor_args), f"{artifact.contract_name}.{INITIALIZER_NAME}")
            init_data = encode_initializer(artifact, args)
            implementation = self.backend.deploy(artifact, [])
            logger.info("%s implementation deployed: %s", contract_name, implementation.address)
            try:
                deployed = self.backend.deploy_proxy(implementation.address, init_data)
            except DeployFailedError as e:
                raise DeployFailedError(
                    f"Proxy deployment failed; {contract_name} implementation is left at "
                    f"{implementation.address}: {e}"
                ) from e
            implementation_address: Optional[str] = implementation.address
            attempt = VerificationAttempt(implementation.address, artifact_ref, [], network.network_id)
        else:
            args = validate_arguments(artifact.constructor_inputs, list(constructor_args), artifact.contract_name)
            deployed = self.backend.deploy(artifact, args)
            implementation_address = None
            attempt = VerificationAttempt(deployed.address, artifact_ref, args, network.network_id)

        logger.info("%s deployed: %s", contract_name, deployed.address)

        verified = self._verify(attempt, network, verification_delay_seconds)

        record = DeploymentRecord(
            network_id=network.network_id,
            contract_name=contract_name,
            address=deployed.address,
            implementation_address=implementation_address,
            constructor_args=args,
            verified=verified,
        )
        self.store.put(network.network_id, record)
        return record

    def upgrade(
        self,
        proxy_address: str,
        new_contract_name: str,
        network: NetworkContext,
        artifact_path: Optional[str] = None,
        verification_delay_seconds: Optional[float] = None,
    ) -> ProxyHandle:
        """
        Deploy a new implementation and repoint an existing proxy at it.

        Storage layout compatibility between the old and new implementation is
        not checked here.

        Raises:
            NotAProxyError: proxy_address is not an EIP-1967 proxy
            DeployFailedError: New implementation failed to deploy
            PartialUpgradeError: Implementation deployed but the repoint failed
        """
        proxy_address = self._probe(proxy_address)

        artifact = self._resolve(new_contract_name, artifact_path)
        self._check_implementation(artifact)
        previous = self.backend.get_implementation(proxy_address)

        implementation = self.backend.deploy(artifact, [])
        logger.info("%s implementation deployed: %s", new_contract_name, implementation.address)

        return self.complete_upgrade(
            proxy_address,
            implementation.address,
            network,
            new_contract_name,
            artifact_path=artifact_path or artifact.fully_qualified_name,
            verification_delay_seconds=verification_delay_seconds,
            previous_implementation=previous,
        )

    def complete_upgrade(
        self,
        proxy_address: str,
        implementation_address: str,
        network: NetworkContext,
        contract_name: str,
        artifact_path: Optional[str] = None,
        verification_delay_seconds: Optional[float] = None,
        previous_implementation: Optional[str] = None,
    ) -> ProxyHandle:
        """
        Repoint a proxy at an already deployed implementation, then verify and store.

        This is also the resume path after a PartialUpgradeError.

        Raises:
            NotAProxyError: proxy_address is not an EIP-1967 proxy
            InvalidArgumentsError: implementation_address is not an address, or
                                   the proxy already points at it
            PartialUpgradeError: The repoint transaction failed
        """
        if not is_address(implementation_address):
            raise InvalidArgumentsError(f"Invalid implementation address: {implementation_address!r}")
        implementation_address = to_checksum_address(implementation_address)

        if previous_implementation is None:
            proxy_address = self._probe(proxy_address)
            previous_implementation = self.backend.get_implementation(proxy_address)
        else:
            proxy_address = to_checksum_address(proxy_address)

        if to_checksum_address(previous_implementation) == implementation_address:
            raise InvalidArgumentsError(
                f"{proxy_address} already points at {implementation_address}; nothing to upgrade"
            )

        artifact_ref = artifact_path or self._resolve(contract_name, None).fully_qualified_name

        try:
            self.backend.repoint(proxy_address, implementation_address)
        except Exception as e:
            raise PartialUpgradeError(proxy_address, implementation_address, str(e)) from e

        logger.info("%s now points at %s", proxy_address, implementation_address)

        verified = self._verify(
            VerificationAttempt(implementation_address, artifact_ref, [], network.network_id),
            network,
            verification_delay_seconds,
        )

        record = self.store.get(network.network_id)
        if record is not None and record.address == proxy_address:
            record = dataclasses.replace(
                record,
                contract_name=contract_name,
                implementation_address=implementation_address,
                verified=verified,
            )
        else:
            record = DeploymentRecord(
                network_id=network.network_id,
                contract_name=contract_name,
                address=proxy_address,
                implementation_address=implementation_address,
                constructor_args=[],
                verified=verified,
            )
        self.store.put(network.network_id, record)

        return ProxyHandle(
            address=proxy_address,
            implementation_address=implementation_address,
            previous_implementation_address=previous_implementation,
            verified=verified,
        )
