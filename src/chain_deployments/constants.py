"""Configuration constants for chain-deployments library."""

# Local simulation networks: hardhat node, ganache / legacy anvil
EPHEMERAL_CHAIN_IDS = frozenset({31337, 1337})

# Wait before submitting verification so the explorer has indexed the deploy tx
DEFAULT_VERIFICATION_DELAY_SECONDS = 30

DEFAULT_RPC_URL = "http://127.0.0.1:8545"

# Etherscan v2: a single endpoint for every supported chain, selected by chainid
ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"

# EIP-1967: bytes32(uint256(keccak256("eip1967.proxy.implementation")) - 1)
EIP1967_IMPLEMENTATION_SLOT = (
    "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"
)

# Artifact used for proxy deployments (OpenZeppelin)
PROXY_CONTRACT_NAME = "ERC1967Proxy"
INITIALIZER_NAME = "initialize"

UPGRADE_ABI = [
    {
        "type": "function",
        "name": "upgradeToAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    }
]

# Network metadata keyed by chain id
NETWORK_CONFIG = {
    1: {
        "chain_name": "Ethereum Mainnet",
        "block_explorer_url": "https://etherscan.io",
    },
    11155111: {
        "chain_name": "Sepolia",
        "block_explorer_url": "https://sepolia.etherscan.io",
    },
    137: {
        "chain_name": "Polygon",
        "block_explorer_url": "https://polygonscan.com",
    },
    80002: {
        "chain_name": "Polygon Amoy",
        "block_explorer_url": "https://amoy.polygonscan.com",
    },
    42161: {
        "chain_name": "Arbitrum One",
        "block_explorer_url": "https://arbiscan.io",
    },
    10: {
        "chain_name": "OP Mainnet",
        "block_explorer_url": "https://optimistic.etherscan.io",
    },
    8453: {
        "chain_name": "Base",
        "block_explorer_url": "https://basescan.org",
    },
    100: {
        "chain_name": "Gnosis Chain",
        "block_explorer_url": "https://gnosisscan.io",
    },
}
