"""Block explorer source verification for chain-deployments library."""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .artifacts import ArtifactStore, encode_arguments, validate_arguments
from .constants import ETHERSCAN_API_URL
from .exceptions import ArtifactError, ContractNotFoundError, InvalidArgumentsError
from .types import VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

# Explorer messages (lowercased substrings) and how to treat them
_ALREADY_VERIFIED_MARKERS = ("already verified",)
_TRANSIENT_MARKERS = (
    "unable to locate",  # explorer has not indexed the contract yet
    "rate limit",
    "pending in queue",
    "try again",
    "timeout",
)


def classify_message(message: str) -> VerificationStatus:
    """Map an explorer rejection message to a verification status."""
    lowered = message.lower()
    if any(marker in lowered for marker in _ALREADY_VERIFIED_MARKERS):
        return VerificationStatus.ALREADY_VERIFIED
    if any(marker in lowered for marker in _TRANSIENT_MARKERS):
        return VerificationStatus.TRANSIENT
    return VerificationStatus.PERMANENT


class EtherscanVerifier:
    """
    Submits standard-json-input verification to an Etherscan v2 compatible API.

    submit() never raises; every failure is returned as a classified
    VerificationResult.
    """

    def __init__(
        self,
        api_key: Optional[str],
        artifacts: ArtifactStore,
        chain_id: int,
        api_url: str = ETHERSCAN_API_URL,
        poll_interval: float = 5,
        max_polls: int = 10,
        timeout: float = 60,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.artifacts = artifacts
        self.chain_id = chain_id
        self.api_url = api_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.timeout = timeout
        self._sleep = sleep

    def _request(
        self, method: str, params: Dict[str, Any], data: Optional[Dict[str, Any]] = None
    ) -> Union[Dict[str, Any], VerificationResult]:
        """Call the explorer API, returning its JSON object or a VerificationResult on failure."""
        query = {"chainid": self.chain_id, **params}
        try:
            response = requests.request(
                method, self.api_url, params=query, data=data, timeout=self.timeout
            )
        except requests.RequestException as e:
            return VerificationResult(VerificationStatus.TRANSIENT, f"Network error: {e}")

        if response.status_code == 429 or response.status_code >= 500:
            return VerificationResult(
                VerificationStatus.TRANSIENT,
                f"Explorer returned HTTP {response.status_code}",
            )
        if response.status_code != 200:
            return VerificationResult(
                VerificationStatus.PERMANENT,
                f"Explorer returned HTTP {response.status_code}",
            )

        try:
            body = response.json()
        except ValueError:
            return VerificationResult(
                VerificationStatus.TRANSIENT, "Explorer returned a non-JSON response"
            )
        if not isinstance(body, dict):
            return VerificationResult(
                VerificationStatus.TRANSIENT, f"Explorer returned an unexpected response: {body!r}"
            )
        return body

    def submit(self, address: str, artifact_ref: str, constructor_args: List[Any]) -> VerificationResult:
        """
        Submit a deployed contract for verification and wait for the verdict.

        Args:
            address: Deployed contract address
            artifact_ref: Fully qualified name, e.g. "contracts/Market.sol:Market"
            constructor_args: Validated constructor arguments used at deploy time

        Returns:
            VerificationResult
        """
        if not self.api_key:
            return VerificationResult(
                VerificationStatus.PERMANENT, "No explorer API key configured (ETHERSCAN_API_KEY)"
            )

        try:
            artifact = self.artifacts.resolve(artifact_ref)
            build_info = self.artifacts.load_build_info(artifact)
            args = validate_arguments(artifact.constructor_inputs, list(constructor_args), artifact.contract_name)
            encoded_args = encode_arguments(artifact.constructor_inputs, args)
        except (ArtifactError, ContractNotFoundError, InvalidArgumentsError) as e:
            return VerificationResult(VerificationStatus.PERMANENT, str(e))

        data = {
            "apikey": self.api_key,
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": json.dumps(build_info["input"]),
            "codeformat": "solidity-standard-json-input",
            "contractname": artifact.fully_qualified_name,
            "compilerversion": f"v{build_info['solcLongVersion']}",
            "constructorArguements": encoded_args.hex(),  # Etherscan's spelling
        }

        result = self._request("POST", {}, data=data)
        if isinstance(result, VerificationResult):
            return result

        message = str(result.get("result", ""))
        if result.get("status") != "1":
            return VerificationResult(classify_message(message), message)

        return self.check_status(message)

    def check_status(self, guid: str) -> VerificationResult:
        """
        Poll a submission until the explorer reaches a verdict or polling runs out.

        Returns:
            VERIFIED / ALREADY_VERIFIED / PERMANENT as reported, or TRANSIENT if
            still pending after max_polls attempts
        """
        message = "Pending in queue"
        for attempt in range(1, self.max_polls + 1):
            self._sleep(self.poll_interval)

            result = self._request(
                "GET",
                {
                    "apikey": self.api_key,
                    "module": "contract",
                    "action": "checkverifystatus",
                    "guid": guid,
                },
            )
            if isinstance(result, VerificationResult):
                logger.debug("Status check %d/%d failed: %s", attempt, self.max_polls, result.message)
                continue

            message = str(result.get("result", ""))
            if result.get("status") == "1":
                return VerificationResult(VerificationStatus.VERIFIED, message, guid)

            status = classify_message(message)
            if status is VerificationStatus.TRANSIENT and "pending" in message.lower():
                logger.debug("Verification %s pending (%d/%d)", guid, attempt, self.max_polls)
                continue
            return VerificationResult(status, message, guid)

        return VerificationResult(
            VerificationStatus.TRANSIENT,
            f"No verdict after {self.max_polls} status checks: {message}",
            guid,
        )
