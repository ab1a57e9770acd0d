"""Run configuration for chain-deployments library."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .constants import DEFAULT_RPC_URL, DEFAULT_VERIFICATION_DELAY_SECONDS
from .exceptions import ConfigurationError
from .types import NetworkContext

MODES = ("deploy", "upgrade")


@dataclass
class DeployConfig:
    """Everything one deploy or upgrade run needs, passed in at call time."""

    contract_name: str
    constructor_args: List[Any] = field(default_factory=list)
    network: Optional[NetworkContext] = None  # None: ask the connected node
    artifact_path: Optional[str] = None  # e.g. "contracts/Market.sol:Market"
    verification_delay_seconds: float = DEFAULT_VERIFICATION_DELAY_SECONDS
    mode: str = "deploy"
    proxy: bool = False  # deploy mode: deploy behind an ERC1967Proxy
    proxy_address: Optional[str] = None  # upgrade mode: proxy to repoint

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown mode '{self.mode}', expected one of {MODES}")
        if self.mode == "upgrade" and not self.proxy_address:
            raise ConfigurationError("Upgrade mode requires proxy_address")
        if self.verification_delay_seconds < 0:
            raise ConfigurationError("verification_delay_seconds must not be negative")


def load_config_file(path: Union[Path, str]) -> Dict[str, Any]:
    """
    Read DeployConfig fields from a JSON file.

    Args:
        path: JSON file with any of the DeployConfig field names; "network_id"
              may be given instead of a network object

    Returns:
        Dictionary of recognized fields

    Raises:
        ConfigurationError: If the file is missing, malformed or has unknown keys
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    allowed = set(DeployConfig.__dataclass_fields__) - {"network"} | {"network_id"}
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {path}: {sorted(unknown)}")

    if "network_id" in data:
        data["network"] = NetworkContext.from_chain_id(data.pop("network_id"))
    return data


def rpc_url_from_env() -> str:
    return os.environ.get("RPC_URL", DEFAULT_RPC_URL)


def private_key_from_env() -> Optional[str]:
    return os.environ.get("DEPLOYER_PRIVATE_KEY") or None


def explorer_api_key_from_env() -> Optional[str]:
    return os.environ.get("ETHERSCAN_API_KEY") or None
