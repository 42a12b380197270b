"""Data models for the bETH anchor vault."""

from dataclasses import dataclass, field

from beth_vault.constants import (
    PETRIFIED_VERSION,
    VERSION_UNINITIALIZED,
    ZERO_ADDRESS,
    ZERO_BYTES32,
)


@dataclass
class VaultState:
    """Identities, lifecycle flags and the two asset addresses."""

    admin: str = ZERO_ADDRESS
    emergency_admin: str = ZERO_ADDRESS
    operations_allowed: bool = False
    # 0 = uninitialized, PETRIFIED_VERSION = permanently inert.
    version: int = VERSION_UNINITIALIZED
    steth_token: str = ZERO_ADDRESS
    beth_token: str = ZERO_ADDRESS

    @property
    def is_initialized(self) -> bool:
        return self.beth_token != ZERO_ADDRESS

    @property
    def is_petrified(self) -> bool:
        return self.version == PETRIFIED_VERSION

    @property
    def is_live(self) -> bool:
        return self.is_initialized and VERSION_UNINITIALIZED < self.version < PETRIFIED_VERSION

    @property
    def is_ossified(self) -> bool:
        return self.admin == ZERO_ADDRESS


@dataclass
class ConfigRegistry:
    """Collaborator addresses and liquidation interval settings."""

    bridge_connector: str = ZERO_ADDRESS
    rewards_liquidator: str = ZERO_ADDRESS
    insurance_connector: str = ZERO_ADDRESS
    # bytes32 Terra address of the rewards distributor, 0x-prefixed hex.
    anchor_rewards_distributor: str = ZERO_BYTES32
    liquidations_admin: str = ZERO_ADDRESS
    no_liquidation_interval: int = 0
    restricted_liquidation_interval: int = 0


@dataclass
class PegState:
    """Snapshot taken at the most recent harvest (or at initialization)."""

    last_liquidation_time: int = 0
    # Uncorrected stETH share price; the baseline for stability checks.
    last_liquidation_share_price: int = 0
    last_liquidation_shares_burnt: int = 0


@dataclass
class RefundLedger:
    """bETH already paid out in stETH but not yet burned."""

    total_beth_refunded: int = 0


@dataclass
class VaultStorage:
    """The whole persisted vault record."""

    state: VaultState = field(default_factory=VaultState)
    config: ConfigRegistry = field(default_factory=ConfigRegistry)
    peg: PegState = field(default_factory=PegState)
    refunds: RefundLedger = field(default_factory=RefundLedger)


@dataclass(frozen=True)
class HarvestPlan:
    """Outcome of the rewards computation for one harvest."""

    share_price: int
    share_price_corrected: int
    previous_share_price: int
    shares_burnt: int
    shares_burnt_since: int
    shares_balance: int
    steth_to_sell: int

    @property
    def has_rewards(self) -> bool:
        return self.steth_to_sell > 0


@dataclass(frozen=True)
class PegStatus:
    """Point-in-time view of the peg guard inputs and outputs."""

    steth_balance: int
    beth_supply: int
    total_beth_refunded: int
    deposit_rate: int
    withdraw_rate: int
    share_price: int
    last_liquidation_share_price: int
    is_stable: bool
    operations_allowed: bool

    @property
    def share_price_drift(self) -> int:
        return self.share_price - self.last_liquidation_share_price

    @property
    def can_deposit_or_withdraw(self) -> bool:
        return self.operations_allowed and self.is_stable


@dataclass(frozen=True)
class VaultEventRecord:
    """A decoded vault event from the chain log."""

    name: str
    block_number: int
    tx_hash: str
    log_index: int
    # Indexed address (sender / recipient) when the event has one.
    account: str | None
    values: tuple
