from dataclasses import dataclass

import pytest

from beth_vault.constants import CURRENT_VERSION
from beth_vault.local import (
    LocalBridgeConnector,
    LocalHost,
    LocalInsuranceConnector,
    LocalLiquidator,
    LocalStETH,
    LocalToken,
)
from beth_vault.vault import AnchorVault

ETH = 10**18

VAULT = "0x00000000000000000000000000000000000000aa"
STETH = "0x00000000000000000000000000000000000000a1"
BETH = "0x00000000000000000000000000000000000000a2"
UST = "0x00000000000000000000000000000000000000a3"
BRIDGE = "0x00000000000000000000000000000000000000b1"
LIQUIDATOR = "0x00000000000000000000000000000000000000b2"
INSURANCE = "0x00000000000000000000000000000000000000b3"
ESCROW = "0x00000000000000000000000000000000000000e1"
MARKET = "0x00000000000000000000000000000000000000e2"

DEPLOYER = "0x0000000000000000000000000000000000000d01"
ADMIN = "0x0000000000000000000000000000000000000d02"
EMERGENCY_ADMIN = "0x0000000000000000000000000000000000000d03"
LIQUIDATIONS_ADMIN = "0x0000000000000000000000000000000000000d04"
WHALE = "0x0000000000000000000000000000000000000c01"
ALICE = "0x0000000000000000000000000000000000000c02"
BOB = "0x0000000000000000000000000000000000000c03"
STRANGER = "0x0000000000000000000000000000000000000c04"

TERRA_ADDRESS = "0x" + "11" * 32
REWARDS_DISTRIBUTOR = "0x" + "22" * 32

NO_LIQUIDATION_INTERVAL = 3600
RESTRICTED_LIQUIDATION_INTERVAL = 7200
UST_PER_STETH = 3000 * ETH
START_TIME = 1_640_000_000


@dataclass
class Deployment:
    host: LocalHost
    vault: AnchorVault
    steth: LocalStETH
    beth: LocalToken
    ust: LocalToken
    bridge: LocalBridgeConnector
    liquidator: LocalLiquidator
    insurance: LocalInsuranceConnector

    def deposit(self, who: str, amount: int, *, extra_data: bytes = b"") -> tuple[int, int]:
        self.steth.approve(who, VAULT, amount)
        return self.vault.submit(who, amount, TERRA_ADDRESS, extra_data, CURRENT_VERSION)

    def bridge_back(self, who: str, amount: int) -> None:
        """Release bETH from the bridge escrow to an Ethereum holder."""
        self.beth.transfer(ESCROW, who, amount)

    def rebaseline(self) -> int:
        """Run a harvest as the public, after the restricted interval, to record the new share price."""
        self.host.sleep(RESTRICTED_LIQUIDATION_INTERVAL + 1)
        return self.vault.collect_rewards(STRANGER)


def build_deployment(*, bridge_precision: int = 18, configure: bool = True) -> Deployment:
    host = LocalHost(timestamp=START_TIME)
    steth = host.deploy(STETH, LocalStETH(STETH))
    beth = host.deploy(BETH, LocalToken(BETH, minter=VAULT))
    ust = host.deploy(UST, LocalToken(UST, minter=LIQUIDATOR))
    bridge = host.deploy(BRIDGE, LocalBridgeConnector(BRIDGE, beth, ust, precision=bridge_precision, escrow=ESCROW))
    liquidator = host.deploy(
        LIQUIDATOR, LocalLiquidator(LIQUIDATOR, steth, ust, ust_per_steth=UST_PER_STETH, market=MARKET)
    )
    insurance = host.deploy(INSURANCE, LocalInsuranceConnector(INSURANCE, steth))

    # Share price starts at exactly 1 ETH per share.
    steth.submit(WHALE, 1000 * ETH)
    steth.submit(ALICE, 100 * ETH)
    steth.submit(BOB, 100 * ETH)

    vault = AnchorVault(VAULT, host, host.resolve)
    vault.initialize(DEPLOYER, STETH, BETH, ADMIN, EMERGENCY_ADMIN)
    if configure:
        vault.configure(
            ADMIN,
            BRIDGE,
            LIQUIDATOR,
            INSURANCE,
            LIQUIDATIONS_ADMIN,
            NO_LIQUIDATION_INTERVAL,
            RESTRICTED_LIQUIDATION_INTERVAL,
            REWARDS_DISTRIBUTOR,
        )
    return Deployment(host, vault, steth, beth, ust, bridge, liquidator, insurance)


@pytest.fixture
def d() -> Deployment:
    return build_deployment()
