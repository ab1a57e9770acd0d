"""Path management utilities for chain-deployments library."""

import os
from pathlib import Path
from typing import Optional, Union


def get_default_store_dir() -> Path:
    """
    Get default address store directory.

    Returns:
        $DEPLOYMENTS_DIR if set, otherwise ./deployments
    """
    env_dir = os.environ.get("DEPLOYMENTS_DIR")
    if env_dir:
        return Path(env_dir).absolute()
    return Path.cwd() / "deployments"


def get_default_artifacts_dir() -> Path:
    """
    Get default hardhat artifacts directory.

    Returns:
        $ARTIFACTS_DIR if set, otherwise ./artifacts
    """
    env_dir = os.environ.get("ARTIFACTS_DIR")
    if env_dir:
        return Path(env_dir).absolute()
    return Path.cwd() / "artifacts"


def get_record_path(network_id: int, store_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the record file for a network.

    Args:
        network_id: Chain id
        store_root: Custom store directory (defaults to get_default_store_dir())

    Returns:
        Path to {store_root}/{network_id}-addresses.json
    """
    if store_root is None:
        store_root = get_default_store_dir()
    else:
        store_root = Path(store_root).absolute()

    return store_root / f"{int(network_id)}-addresses.json"
