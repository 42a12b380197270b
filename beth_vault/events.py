"""Events appended to the vault log by state-changing operations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VaultEvent:
    """Base class for vault events."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Deposited(VaultEvent):
    sender: str
    # stETH actually locked, after the bridge rounding refund.
    amount: int
    terra_address: str
    beth_amount: int


@dataclass(frozen=True)
class Withdrawn(VaultEvent):
    recipient: str
    amount: int
    steth_amount: int


@dataclass(frozen=True)
class Refunded(VaultEvent):
    recipient: str
    beth_amount: int
    steth_amount: int
    comment: str


@dataclass(frozen=True)
class RefundedBethBurned(VaultEvent):
    beth_amount: int


@dataclass(frozen=True)
class RewardsCollected(VaultEvent):
    steth_amount: int
    ust_amount: int


@dataclass(frozen=True)
class AdminChanged(VaultEvent):
    new_admin: str


@dataclass(frozen=True)
class EmergencyAdminChanged(VaultEvent):
    new_emergency_admin: str


@dataclass(frozen=True)
class BridgeConnectorUpdated(VaultEvent):
    bridge_connector: str


@dataclass(frozen=True)
class RewardsLiquidatorUpdated(VaultEvent):
    rewards_liquidator: str


@dataclass(frozen=True)
class InsuranceConnectorUpdated(VaultEvent):
    insurance_connector: str


@dataclass(frozen=True)
class LiquidationConfigUpdated(VaultEvent):
    liquidations_admin: str
    no_liquidation_interval: int
    restricted_liquidation_interval: int


@dataclass(frozen=True)
class AnchorRewardsDistributorUpdated(VaultEvent):
    anchor_rewards_distributor: str


@dataclass(frozen=True)
class VersionIncremented(VaultEvent):
    new_version: int


@dataclass(frozen=True)
class OperationsStopped(VaultEvent):
    pass


@dataclass(frozen=True)
class OperationsResumed(VaultEvent):
    pass
