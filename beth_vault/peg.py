"""Peg guard: bETH/stETH conversion rates and share price stability."""

from beth_vault.constants import RATE_SCALE, SHARE_PRICE_SCALE, STETH_SHARE_PRICE_MAX_ERROR
from beth_vault.models import PegStatus


def compute_rate(steth_balance: int, beth_supply: int, total_beth_refunded: int, *, is_withdraw_rate: bool) -> int:
    """
    Compute the bETH/stETH conversion rate (1e18 scale).

    The refunded amount is excluded from the bETH supply: those tokens are
    already paid out and will never be presented for withdrawal. While the
    vault holds at least as much stETH as there is bETH outstanding the rate is
    1:1. Otherwise both directions disadvantage the user:

    - withdraw: stETH per bETH, `steth_balance / beth_supply` (< 1)
    - deposit: bETH per stETH, `beth_supply / steth_balance` (> 1)

    A deposit into a vault holding no stETH at all is done at 1:1.
    """
    beth_supply_adj = beth_supply - total_beth_refunded
    if steth_balance >= beth_supply_adj:
        return RATE_SCALE
    if is_withdraw_rate:
        return (steth_balance * RATE_SCALE) // beth_supply_adj
    if steth_balance != 0:
        return (beth_supply_adj * RATE_SCALE) // steth_balance
    return RATE_SCALE


def steth_share_price(total_pooled_ether: int, total_shares: int) -> int:
    """Uncorrected stETH share price (1e18 scale)."""
    return (SHARE_PRICE_SCALE * total_pooled_ether) // total_shares


def share_price_diff(share_price: int, baseline: int) -> int:
    return abs(share_price - baseline)


def is_share_price_stable(share_price: int, last_liquidation_share_price: int) -> bool:
    """True while the share price is within rounding noise of the harvest baseline (boundary included)."""
    return share_price_diff(share_price, last_liquidation_share_price) <= STETH_SHARE_PRICE_MAX_ERROR


def peg_status(
    *,
    steth_balance: int,
    beth_supply: int,
    total_beth_refunded: int,
    share_price: int,
    last_liquidation_share_price: int,
    operations_allowed: bool,
) -> PegStatus:
    """Evaluate every peg guard output for the given inputs."""
    return PegStatus(
        steth_balance=steth_balance,
        beth_supply=beth_supply,
        total_beth_refunded=total_beth_refunded,
        deposit_rate=compute_rate(steth_balance, beth_supply, total_beth_refunded, is_withdraw_rate=False),
        withdraw_rate=compute_rate(steth_balance, beth_supply, total_beth_refunded, is_withdraw_rate=True),
        share_price=share_price,
        last_liquidation_share_price=last_liquidation_share_price,
        is_stable=is_share_price_stable(share_price, last_liquidation_share_price),
        operations_allowed=operations_allowed,
    )
