"""Durable per-network deployment records for chain-deployments library."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from .exceptions import StoreCorruptedError
from .paths import get_default_store_dir, get_record_path
from .types import DeploymentRecord

logger = logging.getLogger(__name__)


class AddressStore:
    """
    One JSON record per network, overwritten wholesale on each put.

    Writes go through a temp file in the same directory followed by
    os.replace(), so readers never observe a half-written record. There is no
    in-process lock: a single writer per network is assumed.
    """

    def __init__(self, root: Optional[Union[Path, str]] = None):
        """
        Args:
            root: Directory holding {network_id}-addresses.json files
                  (defaults to $DEPLOYMENTS_DIR or ./deployments)
        """
        self.root = get_default_store_dir() if root is None else Path(root).absolute()

    def path_for(self, network_id: int) -> Path:
        return get_record_path(network_id, self.root)

    def get(self, network_id: int) -> Optional[DeploymentRecord]:
        """
        Load the record for a network.

        Returns:
            DeploymentRecord, or None if nothing was stored for the network

        Raises:
            StoreCorruptedError: If the record file exists but cannot be parsed
        """
        path = self.path_for(network_id)
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise StoreCorruptedError(f"Unreadable deployment record {path}: {e}") from e

        try:
            return DeploymentRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreCorruptedError(f"Malformed deployment record {path}: {e}") from e

    def put(self, network_id: int, record: DeploymentRecord) -> Path:
        """
        Persist a record, replacing any previous record for the network.

        The record is flushed and fsynced before this returns.

        Returns:
            Path of the written record file
        """
        path = self.path_for(network_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(record.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Stored %s at %s for network %s", record.contract_name, record.address, network_id)
        return path

    def networks(self) -> List[int]:
        """Network ids that currently have a stored record, sorted."""
        if not self.root.exists():
            return []

        result = []
        for path in self.root.glob("*-addresses.json"):
            prefix = path.name[: -len("-addresses.json")]
            if prefix.isdigit():
                result.append(int(prefix))
        return sorted(result)
