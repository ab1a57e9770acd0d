"""web3.py deployment backend for chain-deployments library."""

import logging
from typing import Any, List, Optional

import requests
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from .artifacts import ArtifactStore, to_abi_values
from .constants import EIP1967_IMPLEMENTATION_SLOT, PROXY_CONTRACT_NAME, UPGRADE_ABI
from .exceptions import DeployFailedError
from .types import Artifact, DeployResult, NetworkContext

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


class Web3Backend:
    """
    Sends deploy and upgrade transactions through a web3.py provider.

    Holds no state between calls beyond the connection and signing account.
    """

    def __init__(
        self,
        w3: Web3,
        account: Optional[LocalAccount] = None,
        artifacts: Optional[ArtifactStore] = None,
        receipt_timeout: float = 120,
    ):
        """
        Args:
            w3: Connected Web3 instance
            account: Local signing account; if None the node's first unlocked
                     account sends transactions (local dev nodes)
            artifacts: Artifact store used to locate the ERC1967Proxy artifact
            receipt_timeout: Seconds to wait for each transaction to be mined
        """
        self.w3 = w3
        self.account = account
        self.artifacts = artifacts
        self.receipt_timeout = receipt_timeout

    def network(self) -> NetworkContext:
        """Network the provider is connected to."""
        return NetworkContext.from_chain_id(self.w3.eth.chain_id)

    @property
    def sender(self) -> str:
        if self.account is not None:
            return self.account.address
        accounts = self.w3.eth.accounts
        if not accounts:
            raise DeployFailedError("No signing account configured and the node exposes no accounts")
        return accounts[0]

    def _send(self, fn: Any, description: str) -> Any:
        """Submit a constructor/function call and wait for a successful receipt."""
        try:
            if self.account is not None:
                tx = fn.build_transaction(
                    {
                        "from": self.account.address,
                        "nonce": self.w3.eth.get_transaction_count(self.account.address),
                    }
                )
                signed = self.account.sign_transaction(tx)
                tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = fn.transact({"from": self.sender})

            logger.info("Waiting for %s: %s", description, Web3.to_hex(tx_hash))
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as e:
            raise DeployFailedError(f"{description} was not mined: {e}") from e
        except (Web3Exception, requests.RequestException, ValueError) as e:
            raise DeployFailedError(f"{description} failed: {e}") from e

        if receipt["status"] != 1:
            raise DeployFailedError(f"{description} reverted (tx {Web3.to_hex(tx_hash)})")
        return receipt

    def deploy(self, artifact: Artifact, constructor_args: List[Any]) -> DeployResult:
        """
        Deploy an artifact and wait for it to be mined.

        Args:
            artifact: Compiled contract
            constructor_args: Validated constructor arguments

        Returns:
            DeployResult with the checksummed contract address

        Raises:
            DeployFailedError: If the transaction reverted, timed out or was rejected
        """
        contract = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        args = to_abi_values(artifact.constructor_inputs, constructor_args)
        receipt = self._send(contract.constructor(*args), f"{artifact.contract_name} deployment")

        address = receipt["contractAddress"]
        if address is None:
            raise DeployFailedError(f"{artifact.contract_name} deployment created no contract")

        return DeployResult(
            address=to_checksum_address(address),
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber"),
        )

    def deploy_proxy(self, implementation_address: str, init_data: bytes) -> DeployResult:
        """Deploy an ERC1967Proxy pointing at an implementation."""
        if self.artifacts is None:
            raise DeployFailedError("Proxy deployment needs an artifact store")
        proxy_artifact = self.artifacts.resolve(PROXY_CONTRACT_NAME)
        return self.deploy(proxy_artifact, [implementation_address, init_data])

    def get_implementation(self, proxy_address: str) -> str:
        """
        Read the EIP-1967 implementation slot of a proxy.

        Raises:
            DeployFailedError: If the node could not be queried
        """
        try:
            raw = self.w3.eth.get_storage_at(to_checksum_address(proxy_address), EIP1967_IMPLEMENTATION_SLOT)
        except (Web3Exception, requests.RequestException) as e:
            raise DeployFailedError(f"Reading the implementation of {proxy_address} failed: {e}") from e
        return to_checksum_address(bytes(raw)[-20:])

    def probe_proxy(self, address: str) -> bool:
        """
        True if the address holds code with a non-zero EIP-1967 implementation slot.

        Raises:
            DeployFailedError: If the node could not be queried
        """
        try:
            address = to_checksum_address(address)
        except ValueError:
            return False

        try:
            code = self.w3.eth.get_code(address)
        except (Web3Exception, requests.RequestException) as e:
            raise DeployFailedError(f"Probing {address} failed: {e}") from e
        if not code:
            return False
        return self.get_implementation(address) != to_checksum_address(ZERO_ADDRESS)

    def repoint(self, proxy_address: str, implementation_address: str) -> str:
        """
        Point a UUPS/transparent proxy at a new implementation.

        Returns:
            Transaction hash

        Raises:
            DeployFailedError: If the upgrade transaction failed
        """
        proxy = self.w3.eth.contract(address=to_checksum_address(proxy_address), abi=UPGRADE_ABI)
        fn = proxy.functions.upgradeToAndCall(to_checksum_address(implementation_address), b"")
        receipt = self._send(fn, f"upgrade of {proxy_address}")
        return Web3.to_hex(receipt["transactionHash"])
