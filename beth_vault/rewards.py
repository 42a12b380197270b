"""Rewards computation for stETH held by the vault."""

from beth_vault.constants import SHARE_PRICE_SCALE
from beth_vault.models import HarvestPlan, PegState
from beth_vault.peg import steth_share_price


def corrected_share_price(total_pooled_ether: int, total_shares: int, shares_burnt_since: int) -> int:
    """
    stETH share price with shares burnt by insurance added back to the denominator.

    Burning shares raises the per-share price without any new rewards entering
    the pool, so the vault must not sell that increase as yield.
    """
    return (SHARE_PRICE_SCALE * total_pooled_ether) // (total_shares + shares_burnt_since)


def plan_harvest(
    *,
    total_pooled_ether: int,
    total_shares: int,
    shares_burnt: int,
    shares_balance: int,
    peg: PegState,
) -> HarvestPlan:
    """
    Work out how much stETH to sell given the current stETH ledger state.

    `shares_burnt` is the insurance connector's cumulative counter and
    `shares_balance` the vault's own stETH shares. The yield is the increase of
    the corrected share price over the previous harvest baseline applied to the
    vault's shares; no increase (or no shares) means nothing to sell.
    """
    share_price = steth_share_price(total_pooled_ether, total_shares)
    shares_burnt_since = shares_burnt - peg.last_liquidation_shares_burnt
    price_corrected = corrected_share_price(total_pooled_ether, total_shares, shares_burnt_since)
    previous = peg.last_liquidation_share_price

    if price_corrected <= previous or shares_balance == 0:
        steth_to_sell = 0
    else:
        steth_to_sell = (shares_balance * (price_corrected - previous)) // SHARE_PRICE_SCALE

    return HarvestPlan(
        share_price=share_price,
        share_price_corrected=price_corrected,
        previous_share_price=previous,
        shares_burnt=shares_burnt,
        shares_burnt_since=shares_burnt_since,
        shares_balance=shares_balance,
        steth_to_sell=steth_to_sell,
    )


def advance_peg_snapshot(peg: PegState, plan: HarvestPlan, *, now: int) -> None:
    """Record the harvest baseline. Done on every harvest, with or without rewards."""
    peg.last_liquidation_time = now
    peg.last_liquidation_share_price = plan.share_price
    peg.last_liquidation_shares_burnt = plan.shares_burnt
