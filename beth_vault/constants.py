"""Constants and configuration for the bETH anchor vault."""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x" + "00" * 32

# Lido DAO Agent: the only principal allowed to resume operations and to
# appoint the emergency admin.
LIDO_DAO_AGENT = "0x3e40D73EB977Dc6a537aF587D48316feE66E9C8c"

RATE_SCALE = 10**18
SHARE_PRICE_SCALE = 10**18
BETH_DECIMALS = 18

# stETH share price can drift by a few wei between reads because of integer
# rounding in the share math; anything beyond this is a real rebase.
STETH_SHARE_PRICE_MAX_ERROR = 10

# Schema versions of the persisted vault record.
VERSION_UNINITIALIZED = 0
CURRENT_VERSION = 3
PETRIFIED_VERSION = 2**256 - 1

# Historical remediation applied once when a v2 record is upgraded to v3:
# bETH minted to a malformed Terra address that can never be redeemed.
REFUND_BETH_AMOUNT = 4449999990000000000
REFUND_RECIPIENT = LIDO_DAO_AGENT
REFUND_COMMENT = "bETH minted to an invalid Terra address, refunding stETH to the DAO treasury"

# Minimal ABI for the AnchorVault - public getters the monitor reads.
ANCHOR_VAULT_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": out_type}],
    }
    for name, out_type in (
        ("admin", "address"),
        ("emergency_admin", "address"),
        ("steth_token", "address"),
        ("beth_token", "address"),
        ("bridge_connector", "address"),
        ("rewards_liquidator", "address"),
        ("insurance_connector", "address"),
        ("anchor_rewards_distributor", "bytes32"),
        ("liquidations_admin", "address"),
        ("no_liquidation_interval", "uint256"),
        ("restricted_liquidation_interval", "uint256"),
        ("last_liquidation_time", "uint256"),
        ("last_liquidation_share_price", "uint256"),
        ("last_liquidation_shares_burnt", "uint256"),
        ("total_beth_refunded", "uint256"),
        ("operations_allowed", "bool"),
        ("version", "uint256"),
        ("get_rate", "uint256"),
        ("can_deposit_or_withdraw", "bool"),
    )
]

# Minimal ABI for Lido (stETH) - share accounting reads.
# Source: https://github.com/lidofinance/lido-dao/blob/master/contracts/0.4.24/StETH.sol
LIDO_STETH_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "totalSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getTotalShares",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "sharesOf",
        "stateMutability": "view",
        "inputs": [{"name": "_account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getPooledEthByShares",
        "stateMutability": "view",
        "inputs": [{"name": "_sharesAmount", "type": "uint256"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "_account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# Minimal ERC20 ABI for bETH reads.
ERC20_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "totalSupply",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "_owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

INSURANCE_CONNECTOR_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "total_shares_burnt",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# Vault event signatures and the ABI types of their non-indexed data.
VAULT_EVENT_SIGNATURES: dict[str, str] = {
    "Deposited": "Deposited(address,uint256,bytes32,uint256)",
    "Withdrawn": "Withdrawn(address,uint256,uint256)",
    "RewardsCollected": "RewardsCollected(uint256,uint256)",
}
VAULT_EVENT_DATA_TYPES: dict[str, list[str]] = {
    "Deposited": ["uint256", "bytes32", "uint256"],
    "Withdrawn": ["uint256", "uint256"],
    "RewardsCollected": ["uint256", "uint256"],
}

# Mainnet AnchorVault proxy. Use --vault to override for testnets.
ANCHOR_VAULT_MAINNET = "0xA2F987A546D4CD1c607Ee8141276876C26b72Bdf"

BLOCKS_PER_DAY = 7200
DEFAULT_LOG_CHUNK_SIZE = 10_000

ETHERSCAN_BASE = "https://etherscan.io"

# Cache configuration
CACHE_DIR_NAME = ".beth_vault_cache"
CACHE_VERSION = "1"  # Increment to invalidate all caches
