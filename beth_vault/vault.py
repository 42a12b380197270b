"""The bETH anchor vault: custody of stETH against bETH minted to Terra."""

import copy
import threading
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import fields
from functools import wraps
from typing import Any

from beth_vault import errors, events
from beth_vault.constants import (
    BETH_DECIMALS,
    CURRENT_VERSION,
    LIDO_DAO_AGENT,
    PETRIFIED_VERSION,
    RATE_SCALE,
    REFUND_BETH_AMOUNT,
    REFUND_COMMENT,
    REFUND_RECIPIENT,
    SHARE_PRICE_SCALE,
    VERSION_UNINITIALIZED,
    ZERO_ADDRESS,
)
from beth_vault.formatters import same_address
from beth_vault.interfaces import (
    BridgeConnector,
    Host,
    InsuranceConnector,
    MintableToken,
    RewardsLiquidator,
    StETH,
)
from beth_vault.models import HarvestPlan, PegStatus, VaultStorage
from beth_vault.peg import compute_rate, is_share_price_stable, peg_status
from beth_vault.rewards import advance_peg_snapshot, plan_harvest


def transactional(method):
    """Run a vault operation all-or-nothing and one at a time."""

    @wraps(method)
    def wrapper(self: "AnchorVault", *args, **kwargs):
        with self._transaction():
            return method(self, *args, **kwargs)

    return wrapper


class AnchorVault:
    """
    Accounting and liquidation engine of the bETH anchor vault.

    Every operation takes the calling address explicitly. Collaborators are
    referenced by address in the stored configuration and turned into objects by
    `resolve` at call time. A failing operation leaves the storage, the event log
    and (through `host.atomic()`) every collaborator exactly as they were.
    """

    def __init__(
        self,
        address: str,
        host: Host,
        resolve: Callable[[str], Any],
        storage: VaultStorage | None = None,
    ):
        self.address = address
        self.host = host
        self.resolve = resolve
        self.storage = storage if storage is not None else VaultStorage()
        self.events: list[events.VaultEvent] = []
        self._lock = threading.RLock()

    # --- transaction plumbing ---

    @contextmanager
    def _transaction(self):
        with self._lock:
            checkpoint = copy.deepcopy(self.storage)
            events_count = len(self.events)
            try:
                with self.host.atomic():
                    yield
            except BaseException:
                self._restore(checkpoint)
                del self.events[events_count:]
                raise

    def _restore(self, checkpoint: VaultStorage) -> None:
        # Copy back into the existing records: callers may hold references to them.
        for f in fields(VaultStorage):
            saved = getattr(checkpoint, f.name)
            record_vars = vars(getattr(self.storage, f.name))
            record_vars.clear()
            record_vars.update(vars(saved))

    def _emit(self, event: events.VaultEvent) -> None:
        self.events.append(event)

    # --- collaborators ---

    def _collaborator(self, address: str, what: str) -> Any:
        if address == ZERO_ADDRESS:
            raise errors.InvalidConfiguration(f"{what} is not set")
        return self.resolve(address)

    def _steth(self) -> StETH:
        return self._collaborator(self.storage.state.steth_token, "stETH token")

    def _beth(self) -> MintableToken:
        return self._collaborator(self.storage.state.beth_token, "bETH token")

    def _bridge(self) -> BridgeConnector:
        return self._collaborator(self.storage.config.bridge_connector, "bridge connector")

    def _liquidator(self) -> RewardsLiquidator:
        return self._collaborator(self.storage.config.rewards_liquidator, "rewards liquidator")

    def _insurance(self) -> InsuranceConnector:
        return self._collaborator(self.storage.config.insurance_connector, "insurance connector")

    # --- guards ---

    def _assert_admin(self, caller: str) -> None:
        state = self.storage.state
        if state.is_ossified or not same_address(caller, state.admin):
            raise errors.Unauthorized("msg.sender is not admin")

    def _assert_governance(self, caller: str) -> None:
        if not same_address(caller, LIDO_DAO_AGENT):
            raise errors.Unauthorized("msg.sender is not governance")

    def _assert_live(self) -> None:
        if not self.storage.state.is_live:
            raise errors.NotInitialized("vault is not initialized")

    def _assert_operations_allowed(self) -> None:
        if not self.storage.state.operations_allowed:
            raise errors.OperationsStopped("contract stopped")

    def _assert_version(self, expected_version: int) -> None:
        actual = self.storage.state.version
        if expected_version != actual:
            raise errors.VersionMismatch(expected_version, actual)

    def _assert_can_deposit_or_withdraw(self) -> None:
        self._assert_operations_allowed()
        if not self.is_stable():
            raise errors.PegUnstable("share price changed")

    # --- views ---

    @property
    def version(self) -> int:
        return self.storage.state.version

    @property
    def admin(self) -> str:
        return self.storage.state.admin

    @property
    def operations_allowed(self) -> bool:
        return self.storage.state.operations_allowed

    @property
    def total_beth_refunded(self) -> int:
        return self.storage.refunds.total_beth_refunded

    def get_steth_share_price(self) -> int:
        return self._steth().get_pooled_eth_by_shares(SHARE_PRICE_SCALE)

    def _get_rate(self, is_withdraw_rate: bool) -> int:
        steth_balance = self._steth().balance_of(self.address)
        beth_supply = self._beth().total_supply()
        return compute_rate(
            steth_balance,
            beth_supply,
            self.storage.refunds.total_beth_refunded,
            is_withdraw_rate=is_withdraw_rate,
        )

    def get_rate(self) -> int:
        """How many bETH one stETH buys on deposit (1e18 scale)."""
        return self._get_rate(False)

    def get_withdraw_rate(self) -> int:
        """How many stETH one bETH redeems for (1e18 scale)."""
        return self._get_rate(True)

    def is_stable(self) -> bool:
        return is_share_price_stable(self.get_steth_share_price(), self.storage.peg.last_liquidation_share_price)

    def can_deposit_or_withdraw(self) -> bool:
        return self.storage.state.operations_allowed and self.is_stable()

    def peg_status(self) -> PegStatus:
        return peg_status(
            steth_balance=self._steth().balance_of(self.address),
            beth_supply=self._beth().total_supply(),
            total_beth_refunded=self.storage.refunds.total_beth_refunded,
            share_price=self.get_steth_share_price(),
            last_liquidation_share_price=self.storage.peg.last_liquidation_share_price,
            operations_allowed=self.storage.state.operations_allowed,
        )

    def preview_rewards(self) -> HarvestPlan:
        """The harvest `collect_rewards` would perform now, without performing it."""
        steth = self._steth()
        return plan_harvest(
            total_pooled_ether=steth.total_supply(),
            total_shares=steth.get_total_shares(),
            shares_burnt=self._insurance().total_shares_burnt(),
            shares_balance=steth.shares_of(self.address),
            peg=self.storage.peg,
        )

    # --- lifecycle ---

    @transactional
    def initialize(self, caller: str, steth_token: str, beth_token: str, admin: str, emergency_admin: str) -> None:
        state = self.storage.state
        if state.is_initialized or state.version != VERSION_UNINITIALIZED:
            raise errors.AlreadyInitialized("already initialized")

        state.steth_token = steth_token
        state.beth_token = beth_token
        if self._beth().total_supply() != 0:
            raise errors.InvalidConfiguration("non-zero bETH total supply")

        self._set_admin(admin)
        self._set_emergency_admin(emergency_admin)
        state.operations_allowed = True

        peg = self.storage.peg
        peg.last_liquidation_time = self.host.now()
        peg.last_liquidation_share_price = self.get_steth_share_price()
        peg.last_liquidation_shares_burnt = 0

        self._set_version(CURRENT_VERSION)

    @transactional
    def petrify_impl(self, caller: str) -> None:
        """Make this instance permanently impossible to initialize."""
        if self.storage.state.version != VERSION_UNINITIALIZED:
            raise errors.AlreadyInitialized("already initialized")
        self.storage.state.version = PETRIFIED_VERSION

    @transactional
    def finalize_upgrade_v3(self, caller: str) -> None:
        """
        Migrate a v1/v2 record to v3.

        Applies the one-off refund for bETH that was minted to an unusable Terra
        address and starts tracking insurance share burns. Reaching version 3 is
        what makes this impossible to run twice.
        """
        state = self.storage.state
        if not state.is_initialized or state.version == VERSION_UNINITIALIZED:
            raise errors.NotInitialized("vault is not initialized")
        if state.version >= CURRENT_VERSION:
            raise errors.AlreadyInitialized("already upgraded")
        self._assert_admin(caller)

        self._perform_refund_for_burned_beth(REFUND_BETH_AMOUNT, REFUND_RECIPIENT, REFUND_COMMENT)
        if self.storage.config.insurance_connector != ZERO_ADDRESS:
            self.storage.peg.last_liquidation_shares_burnt = self._insurance().total_shares_burnt()
        self._set_version(CURRENT_VERSION)

    def _set_version(self, new_version: int) -> None:
        self.storage.state.version = new_version
        self._emit(events.VersionIncremented(new_version))

    @transactional
    def bump_version(self, caller: str) -> None:
        self._assert_admin(caller)
        self._assert_live()
        self._set_version(self.storage.state.version + 1)

    # --- access control ---

    def _set_admin(self, new_admin: str) -> None:
        self.storage.state.admin = new_admin
        self._emit(events.AdminChanged(new_admin))

    @transactional
    def change_admin(self, caller: str, new_admin: str) -> None:
        """Hand over admin rights. The zero address ossifies the vault for good."""
        self._assert_admin(caller)
        self._set_admin(new_admin)

    def _set_emergency_admin(self, new_emergency_admin: str) -> None:
        self.storage.state.emergency_admin = new_emergency_admin
        self._emit(events.EmergencyAdminChanged(new_emergency_admin))

    @transactional
    def set_emergency_admin(self, caller: str, new_emergency_admin: str) -> None:
        self._assert_governance(caller)
        self._set_emergency_admin(new_emergency_admin)

    @transactional
    def emergency_stop(self, caller: str) -> None:
        state = self.storage.state
        is_admin = not state.is_ossified and same_address(caller, state.admin)
        is_emergency_admin = state.emergency_admin != ZERO_ADDRESS and same_address(caller, state.emergency_admin)
        if not (is_admin or is_emergency_admin):
            raise errors.Unauthorized("msg.sender is not admin nor emergency admin")
        self._assert_operations_allowed()
        state.operations_allowed = False
        self._emit(events.OperationsStopped())

    @transactional
    def resume(self, caller: str) -> None:
        self._assert_governance(caller)
        state = self.storage.state
        if state.operations_allowed:
            raise errors.OperationsNotStopped("contract not stopped")
        state.operations_allowed = True
        self._emit(events.OperationsResumed())

    # --- configuration ---

    def _set_bridge_connector(self, bridge_connector: str) -> None:
        self.storage.config.bridge_connector = bridge_connector
        self._emit(events.BridgeConnectorUpdated(bridge_connector))

    def _set_rewards_liquidator(self, rewards_liquidator: str) -> None:
        self.storage.config.rewards_liquidator = rewards_liquidator
        self._emit(events.RewardsLiquidatorUpdated(rewards_liquidator))

    def _set_insurance_connector(self, insurance_connector: str) -> None:
        self.storage.config.insurance_connector = insurance_connector
        self._emit(events.InsuranceConnectorUpdated(insurance_connector))

    def _set_liquidation_config(
        self, liquidations_admin: str, no_liquidation_interval: int, restricted_liquidation_interval: int
    ) -> None:
        if no_liquidation_interval > restricted_liquidation_interval:
            raise errors.InvalidConfiguration("no_liquidation_interval exceeds restricted_liquidation_interval")
        config = self.storage.config
        config.liquidations_admin = liquidations_admin
        config.no_liquidation_interval = no_liquidation_interval
        config.restricted_liquidation_interval = restricted_liquidation_interval
        self._emit(
            events.LiquidationConfigUpdated(liquidations_admin, no_liquidation_interval, restricted_liquidation_interval)
        )

    def _set_anchor_rewards_distributor(self, anchor_rewards_distributor: str) -> None:
        self.storage.config.anchor_rewards_distributor = anchor_rewards_distributor
        self._emit(events.AnchorRewardsDistributorUpdated(anchor_rewards_distributor))

    @transactional
    def set_bridge_connector(self, caller: str, bridge_connector: str) -> None:
        self._assert_admin(caller)
        self._set_bridge_connector(bridge_connector)

    @transactional
    def set_rewards_liquidator(self, caller: str, rewards_liquidator: str) -> None:
        self._assert_admin(caller)
        self._set_rewards_liquidator(rewards_liquidator)

    @transactional
    def set_insurance_connector(self, caller: str, insurance_connector: str) -> None:
        self._assert_admin(caller)
        self._set_insurance_connector(insurance_connector)

    @transactional
    def set_liquidation_config(
        self,
        caller: str,
        liquidations_admin: str,
        no_liquidation_interval: int,
        restricted_liquidation_interval: int,
    ) -> None:
        self._assert_admin(caller)
        self._set_liquidation_config(liquidations_admin, no_liquidation_interval, restricted_liquidation_interval)

    @transactional
    def set_anchor_rewards_distributor(self, caller: str, anchor_rewards_distributor: str) -> None:
        self._assert_admin(caller)
        self._set_anchor_rewards_distributor(anchor_rewards_distributor)

    @transactional
    def configure(
        self,
        caller: str,
        bridge_connector: str,
        rewards_liquidator: str,
        insurance_connector: str,
        liquidations_admin: str,
        no_liquidation_interval: int,
        restricted_liquidation_interval: int,
        anchor_rewards_distributor: str,
    ) -> None:
        self._assert_admin(caller)
        self._set_bridge_connector(bridge_connector)
        self._set_rewards_liquidator(rewards_liquidator)
        self._set_insurance_connector(insurance_connector)
        self._set_liquidation_config(liquidations_admin, no_liquidation_interval, restricted_liquidation_interval)
        self._set_anchor_rewards_distributor(anchor_rewards_distributor)

    # --- deposits and withdrawals ---

    @transactional
    def submit(
        self,
        caller: str,
        amount: int,
        terra_address: str,
        extra_data: bytes,
        expected_version: int,
        *,
        value: int = 0,
    ) -> tuple[int, int]:
        """
        Lock stETH (or stake attached ETH into stETH) and mint bETH to Terra.

        Returns (stETH locked, bETH minted). The deposit rate is read before the
        stETH is taken into custody, so the deposit does not price itself. The
        bridge may round the bETH amount down; any stETH not needed for the
        rounded amount goes back to the caller.
        """
        if amount < 0 or value < 0:
            raise ValueError("amounts must be >= 0")
        self._assert_live()
        self._assert_operations_allowed()
        self._assert_version(expected_version)
        if not self.is_stable():
            raise errors.PegUnstable("share price changed")

        steth = self._steth()
        rate = self.get_rate()

        if value != 0:
            if value != amount:
                raise errors.AmountMismatch("unexpected ETH amount sent")
            shares_minted = steth.submit(self.address, value, ZERO_ADDRESS)
            steth_amount_received = steth.get_pooled_eth_by_shares(shares_minted)
        else:
            steth.transfer_from(self.address, caller, self.address, amount)
            steth_amount_received = amount

        beth_amount = (steth_amount_received * rate) // RATE_SCALE
        bridge = self._bridge()
        beth_amount_adj = bridge.adjust_amount(beth_amount, BETH_DECIMALS)
        steth_amount_adj = (beth_amount_adj * RATE_SCALE) // rate
        if steth_amount_adj > steth_amount_received:
            raise errors.AmountMismatch("bridge adjusted the amount above the deposit")

        steth_to_refund = steth_amount_received - steth_amount_adj
        if steth_to_refund > 0:
            steth.transfer(self.address, caller, steth_to_refund)

        self._beth().mint(self.address, self.storage.config.bridge_connector, beth_amount_adj)
        bridge.forward_beth(terra_address, beth_amount_adj, extra_data)

        self._emit(events.Deposited(caller, steth_amount_adj, terra_address, beth_amount_adj))
        return steth_amount_adj, beth_amount_adj

    def _withdraw(self, recipient: str, beth_amount: int, steth_rate: int) -> int:
        # Re-checked here: the burn or ledger update before this call may have
        # reached collaborators that move the share price.
        self._assert_can_deposit_or_withdraw()
        steth_amount = (beth_amount * steth_rate) // RATE_SCALE
        self._steth().transfer(self.address, recipient, steth_amount)
        return steth_amount

    @transactional
    def withdraw(self, caller: str, beth_amount: int, expected_version: int, recipient: str | None = None) -> int:
        """Burn the caller's bETH and pay out stETH at the withdraw rate."""
        if beth_amount < 0:
            raise ValueError("beth_amount must be >= 0")
        if recipient is None:
            recipient = caller
        self._assert_live()
        self._assert_operations_allowed()
        self._assert_version(expected_version)

        steth_rate = self.get_withdraw_rate()
        self._beth().burn(self.address, caller, beth_amount)
        steth_amount = self._withdraw(recipient, beth_amount, steth_rate)

        self._emit(events.Withdrawn(recipient, beth_amount, steth_amount))
        return steth_amount

    # --- refunds ---

    def _perform_refund_for_burned_beth(self, beth_amount: int, recipient: str, comment: str) -> int:
        steth_rate = self.get_withdraw_rate()
        self.storage.refunds.total_beth_refunded += beth_amount
        steth_amount = self._withdraw(recipient, beth_amount, steth_rate)
        self._emit(events.Refunded(recipient, beth_amount, steth_amount, comment))
        return steth_amount

    @transactional
    def refund_for_burned_beth(self, caller: str, beth_amount: int, recipient: str, comment: str) -> int:
        """
        Pay out stETH for bETH that can never be redeemed (e.g. minted to a malformed Terra address).

        The bETH is counted as burned right away but stays in circulation until
        it reaches the vault and `burn_refunded_beth` destroys it.
        """
        if beth_amount < 0:
            raise ValueError("beth_amount must be >= 0")
        self._assert_admin(caller)
        self._assert_live()
        return self._perform_refund_for_burned_beth(beth_amount, recipient, comment)

    @transactional
    def burn_refunded_beth(self, caller: str, beth_amount: int) -> None:
        """Burn already refunded bETH that has been sent to the vault."""
        if beth_amount < 0:
            raise ValueError("beth_amount must be >= 0")
        self._assert_admin(caller)
        refunds = self.storage.refunds
        if beth_amount > refunds.total_beth_refunded:
            raise errors.InsufficientRefundBalance("burn amount exceeds refunded")
        refunds.total_beth_refunded -= beth_amount
        self._beth().burn(self.address, self.address, beth_amount)
        self._emit(events.RefundedBethBurned(beth_amount))

    # --- rewards ---

    @transactional
    def collect_rewards(self, caller: str) -> int:
        """
        Sell stETH rewards accrued since the last harvest for UST and send them to Terra.

        The liquidations admin may harvest once `no_liquidation_interval` has
        passed, anyone else after `restricted_liquidation_interval`. Returns the
        UST amount forwarded (0 when there was nothing to sell).
        """
        self._assert_live()
        self._assert_operations_allowed()

        config = self.storage.config
        peg = self.storage.peg
        now = self.host.now()
        time_since_last_liquidation = now - peg.last_liquidation_time
        if same_address(caller, config.liquidations_admin) and config.liquidations_admin != ZERO_ADDRESS:
            if time_since_last_liquidation <= config.no_liquidation_interval:
                raise errors.LiquidationTooEarly("too early to sell")
        elif time_since_last_liquidation <= config.restricted_liquidation_interval:
            raise errors.LiquidationTooEarly("too early to sell")

        plan = self.preview_rewards()
        advance_peg_snapshot(peg, plan, now=now)

        if not plan.has_rewards:
            self._emit(events.RewardsCollected(0, 0))
            return 0

        liquidator_address = config.rewards_liquidator
        liquidator = self._liquidator()
        self._steth().transfer(self.address, liquidator_address, plan.steth_to_sell)
        ust_amount = liquidator.liquidate(config.bridge_connector)
        self._bridge().forward_ust(config.anchor_rewards_distributor, ust_amount, b"")

        self._emit(events.RewardsCollected(plan.steth_to_sell, ust_amount))
        return ust_amount
