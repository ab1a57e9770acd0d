"""Command line entry point: one deploy or upgrade per run."""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from eth_account import Account
from web3 import Web3

from .artifacts import ArtifactStore
from .backend import Web3Backend
from .config import (
    DeployConfig,
    explorer_api_key_from_env,
    load_config_file,
    private_key_from_env,
    rpc_url_from_env,
)
from .constants import NETWORK_CONFIG
from .exceptions import ConfigurationError, DeploymentError, PartialUpgradeError
from .orchestrator import DeploymentOrchestrator
from .store import AddressStore
from .types import NetworkContext
from .verification import EtherscanVerifier

logger = logging.getLogger("chain_deployments")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chain-deployments",
        description="Deploy, verify and upgrade contracts from hardhat artifacts.",
    )
    parser.add_argument("--config", help="JSON file with deployment settings")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: $RPC_URL or local node)")
    parser.add_argument("--store-dir", help="Where {chainId}-addresses.json files are written")
    parser.add_argument("--artifacts-dir", help="Hardhat artifacts directory")
    parser.add_argument(
        "--verification-delay",
        type=float,
        help="Seconds to wait before submitting verification",
    )
    parser.add_argument("--no-verify", action="store_true", help="Skip explorer verification")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    sub = parser.add_subparsers(dest="mode", required=True)

    deploy = sub.add_parser("deploy", help="Deploy a contract (optionally behind a proxy)")
    deploy.add_argument("contract", help="Contract name")
    deploy.add_argument("--args", nargs="*", default=None, help="Constructor/initializer arguments")
    deploy.add_argument("--artifact", help="Fully qualified name, e.g. contracts/Market.sol:Market")
    deploy.add_argument("--proxy", action="store_true", help="Deploy behind an ERC1967Proxy")

    upgrade = sub.add_parser("upgrade", help="Deploy a new implementation and repoint a proxy")
    upgrade.add_argument("contract", help="New implementation contract name")
    upgrade.add_argument("--proxy-address", required=True)
    upgrade.add_argument("--artifact", help="Fully qualified name of the new implementation")

    resume = sub.add_parser("resume-upgrade", help="Repoint a proxy at an already deployed implementation")
    resume.add_argument("contract", help="Implementation contract name")
    resume.add_argument("--proxy-address", required=True)
    resume.add_argument("--implementation", required=True)
    resume.add_argument("--artifact", help="Fully qualified name of the implementation")

    return parser


def build_config(args: argparse.Namespace) -> DeployConfig:
    """Merge the optional config file with command line flags (flags win)."""
    settings = load_config_file(args.config) if args.config else {}

    settings["contract_name"] = args.contract
    settings["mode"] = "deploy" if args.mode == "deploy" else "upgrade"
    if getattr(args, "args", None) is not None:
        settings["constructor_args"] = args.args
    if args.artifact:
        settings["artifact_path"] = args.artifact
    if getattr(args, "proxy", False):
        settings["proxy"] = True
    if getattr(args, "proxy_address", None):
        settings["proxy_address"] = args.proxy_address
    if args.verification_delay is not None:
        settings["verification_delay_seconds"] = args.verification_delay

    return DeployConfig(**settings)


def build_orchestrator(
    args: argparse.Namespace, config: DeployConfig
) -> Tuple[DeploymentOrchestrator, NetworkContext]:
    """Connect to the node and wire backend, verifier and stores together."""
    w3 = Web3(Web3.HTTPProvider(args.rpc_url or rpc_url_from_env()))
    if not w3.is_connected():
        raise ConfigurationError("Cannot connect to the JSON-RPC endpoint")

    private_key = private_key_from_env()
    account = Account.from_key(private_key) if private_key else None

    artifacts = ArtifactStore(args.artifacts_dir)
    backend = Web3Backend(w3, account=account, artifacts=artifacts)

    network = backend.network()
    if config.network is not None and config.network.network_id != network.network_id:
        raise ConfigurationError(
            f"Configured network {config.network.network_id} but the node reports {network.network_id}"
        )

    verifier = None
    if not args.no_verify and not network.is_ephemeral:
        verifier = EtherscanVerifier(explorer_api_key_from_env(), artifacts, network.network_id)

    orchestrator = DeploymentOrchestrator(
        backend,
        verifier,
        AddressStore(args.store_dir),
        artifacts,
        verification_delay_seconds=config.verification_delay_seconds,
    )
    return orchestrator, network


def explorer_url(network_id: int, address: str) -> Optional[str]:
    """Block explorer page for an address, if the network is a known one."""
    network = NETWORK_CONFIG.get(network_id)
    if network is None:
        return None
    return f"{network['block_explorer_url']}/address/{address}"


def run(args: argparse.Namespace) -> None:
    config = build_config(args)
    orchestrator, network = build_orchestrator(args, config)
    chain_name = NETWORK_CONFIG.get(network.network_id, {}).get("chain_name", "unknown chain")
    logger.info("Network %s, %s (ephemeral: %s)", network.network_id, chain_name, network.is_ephemeral)

    if args.mode == "deploy":
        record = orchestrator.deploy_and_verify(
            config.contract_name,
            config.constructor_args,
            network,
            artifact_path=config.artifact_path,
            proxy=config.proxy,
        )
        print(f"{record.contract_name} deployed to: {record.address}")
        if record.implementation_address:
            print(f"Implementation: {record.implementation_address}")
        url = explorer_url(network.network_id, record.address)
        if url:
            print(f"Explorer: {url}")
    elif args.mode == "upgrade":
        handle = orchestrator.upgrade(
            config.proxy_address,
            config.contract_name,
            network,
            artifact_path=config.artifact_path,
        )
        print(f"{handle.address} upgraded to implementation {handle.implementation_address}")
    else:
        handle = orchestrator.complete_upgrade(
            config.proxy_address,
            args.implementation,
            network,
            config.contract_name,
            artifact_path=config.artifact_path,
        )
        print(f"{handle.address} upgraded to implementation {handle.implementation_address}")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        run(args)
    except PartialUpgradeError as e:
        logger.error("%s", e)
        print(
            f"Resume with: chain-deployments resume-upgrade {args.contract} "
            f"--proxy-address {e.proxy_address} --implementation {e.implementation_address}",
            file=sys.stderr,
        )
        return 1
    except DeploymentError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
