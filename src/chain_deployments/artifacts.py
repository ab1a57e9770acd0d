"""Hardhat artifact lookup and argument checking for chain-deployments library."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from eth_abi import encode, is_encodable
from eth_utils import is_address, to_bytes, to_checksum_address
from eth_utils.abi import collapse_if_tuple

from .exceptions import ArtifactError, ContractNotFoundError, InvalidArgumentsError
from .paths import get_default_artifacts_dir
from .types import Artifact

_ARRAY_SUFFIX = re.compile(r"^(.*)\[(\d*)\]$")


def parse_artifact_ref(ref: str) -> Tuple[Optional[str], str]:
    """
    Split an artifact reference into (source_name, contract_name).

    "contracts/Market.sol:Market" -> ("contracts/Market.sol", "Market")
    "Market" -> (None, "Market")
    """
    if ":" in ref:
        source_name, contract_name = ref.rsplit(":", 1)
        return source_name, contract_name
    return None, ref


class ArtifactStore:
    """Resolves contract names against a hardhat artifacts directory."""

    def __init__(self, root: Optional[Union[Path, str]] = None):
        """
        Args:
            root: Hardhat artifacts directory (defaults to $ARTIFACTS_DIR or ./artifacts)
        """
        self.root = get_default_artifacts_dir() if root is None else Path(root).absolute()

    def _candidates(self, contract_name: str) -> List[Path]:
        return sorted(
            p
            for p in self.root.rglob(f"{contract_name}.json")
            if "build-info" not in p.relative_to(self.root).parts
        )

    def resolve(self, ref: str) -> Artifact:
        """
        Load the artifact for a contract name or fully qualified name.

        Args:
            ref: "Market" or "contracts/Market.sol:Market"

        Returns:
            Artifact

        Raises:
            ContractNotFoundError: If no artifact matches, or a bare name is ambiguous
            ArtifactError: If the artifact file is malformed
        """
        source_name, contract_name = parse_artifact_ref(ref)

        if source_name is not None:
            path = self.root / source_name / f"{contract_name}.json"
            if not path.exists():
                raise ContractNotFoundError(f"No artifact for '{ref}' under {self.root}")
        else:
            candidates = self._candidates(contract_name)
            if not candidates:
                raise ContractNotFoundError(f"No artifact for '{ref}' under {self.root}")
            if len(candidates) > 1:
                sources = [str(p.parent.relative_to(self.root)) for p in candidates]
                raise ContractNotFoundError(
                    f"Contract name '{ref}' is ambiguous ({', '.join(sources)}); "
                    "use a fully qualified name"
                )
            path = candidates[0]

        return self._load(path)

    def _load(self, path: Path) -> Artifact:
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Malformed artifact {path}: {e}") from e

        for required in ("contractName", "sourceName", "abi", "bytecode"):
            if required not in data:
                raise ArtifactError(f"Artifact {path} is missing '{required}'")

        if data["bytecode"] in ("", "0x"):
            raise ArtifactError(
                f"{data['contractName']} has no bytecode (abstract contract or interface?)"
            )

        # Hardhat writes the build info reference next to the artifact
        build_info_path = None
        dbg_path = path.with_name(f"{path.stem}.dbg.json")
        if dbg_path.exists():
            with open(dbg_path) as f:
                dbg = json.load(f)
            if "buildInfo" in dbg:
                build_info_path = str((dbg_path.parent / dbg["buildInfo"]).resolve())

        return Artifact(
            contract_name=data["contractName"],
            source_name=data["sourceName"],
            abi=data["abi"],
            bytecode=data["bytecode"],
            build_info_path=build_info_path,
        )

    def load_build_info(self, artifact: Artifact) -> Dict[str, Any]:
        """
        Load the compiler input/version used to build an artifact.

        Raises:
            ArtifactError: If the artifact has no build info on disk
        """
        if artifact.build_info_path is None:
            raise ArtifactError(f"No build info recorded for {artifact.fully_qualified_name}")

        try:
            with open(artifact.build_info_path) as f:
                build_info = json.load(f)
        except FileNotFoundError as e:
            raise ArtifactError(f"Build info not found: {artifact.build_info_path}") from e
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Malformed build info {artifact.build_info_path}: {e}") from e

        if "input" not in build_info or "solcLongVersion" not in build_info:
            raise ArtifactError(f"Build info {artifact.build_info_path} lacks compiler input")
        return build_info


def _normalize_value(abi_type: str, value: Any) -> Any:
    """Coerce CLI/JSON friendly values (decimal strings, hex strings) for an ABI type."""
    array_match = _ARRAY_SUFFIX.match(abi_type)
    if array_match:
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"expected a list for {abi_type}")
        inner = array_match.group(1)
        return [_normalize_value(inner, v) for v in value]

    if abi_type == "address":
        if isinstance(value, str) and is_address(value):
            return to_checksum_address(value)
        return value
    if abi_type.startswith(("uint", "int")):
        if isinstance(value, str):
            return int(value, 0)
        return value
    if abi_type == "bool":
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        return value
    return value


def _to_abi_value(abi_type: str, value: Any) -> Any:
    """Convert normalized values to what eth_abi encodes (hex strings -> bytes)."""
    array_match = _ARRAY_SUFFIX.match(abi_type)
    if array_match:
        inner = array_match.group(1)
        return [_to_abi_value(inner, v) for v in value]
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    return value


def validate_arguments(inputs: List[Dict[str, Any]], args: List[Any], label: str) -> List[Any]:
    """
    Check arguments against ABI inputs and return them normalized.

    Addresses come back checksummed and integer strings as ints, so the result
    is both encodable and JSON-serializable.

    Args:
        inputs: ABI "inputs" list (constructor or function)
        args: Positional argument values
        label: Name used in error messages

    Raises:
        InvalidArgumentsError: On arity or type mismatch
    """
    if len(args) != len(inputs):
        raise InvalidArgumentsError(
            f"{label} expects {len(inputs)} argument(s), got {len(args)}"
        )

    normalized = []
    for index, (abi_input, value) in enumerate(zip(inputs, args)):
        abi_type = collapse_if_tuple(abi_input)
        name = abi_input.get("name") or f"#{index}"
        try:
            value = _normalize_value(abi_type, value)
            encodable = is_encodable(abi_type, _to_abi_value(abi_type, value))
        except (TypeError, ValueError):
            encodable = False
        if not encodable:
            raise InvalidArgumentsError(
                f"{label} argument '{name}' is not a valid {abi_type}: {value!r}"
            )
        normalized.append(value)

    return normalized


def to_abi_values(inputs: List[Dict[str, Any]], args: List[Any]) -> List[Any]:
    """Convert validated arguments into values accepted by web3 / eth_abi."""
    return [_to_abi_value(collapse_if_tuple(i), v) for i, v in zip(inputs, args)]


def encode_arguments(inputs: List[Dict[str, Any]], args: List[Any]) -> bytes:
    """ABI-encode validated arguments (no function selector)."""
    types = [collapse_if_tuple(i) for i in inputs]
    return encode(types, to_abi_values(inputs, args))
