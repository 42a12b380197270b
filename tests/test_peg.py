import pytest

from beth_vault.constants import CURRENT_VERSION, RATE_SCALE, STETH_SHARE_PRICE_MAX_ERROR
from beth_vault.errors import PegUnstable
from beth_vault.peg import compute_rate, is_share_price_stable, peg_status, steth_share_price

from conftest import ALICE, BOB, ETH, TERRA_ADDRESS


@pytest.mark.parametrize(
    ("steth_balance", "beth_supply", "refunded"),
    [
        (100, 100, 0),
        (150, 100, 0),
        (90, 100, 10),
        (0, 0, 0),
        (10**20, 10**20 - 1, 0),
    ],
)
def test_rate_is_one_to_one_when_fully_backed(steth_balance, beth_supply, refunded):
    assert compute_rate(steth_balance, beth_supply, refunded, is_withdraw_rate=False) == RATE_SCALE
    assert compute_rate(steth_balance, beth_supply, refunded, is_withdraw_rate=True) == RATE_SCALE


def test_rate_under_collateralized_scenario():
    deposit_rate = compute_rate(90, 100, 0, is_withdraw_rate=False)
    withdraw_rate = compute_rate(90, 100, 0, is_withdraw_rate=True)
    assert deposit_rate == 100 * RATE_SCALE // 90 == 1_111_111_111_111_111_111
    assert withdraw_rate == 900_000_000_000_000_000
    assert 100 * withdraw_rate // RATE_SCALE == 90


def test_refunded_beth_is_excluded_from_supply():
    # 80 stETH against 100 bETH of which 10 are already refunded: 80 / 90.
    assert compute_rate(80, 100, 10, is_withdraw_rate=True) == 80 * RATE_SCALE // 90
    assert compute_rate(80, 100, 10, is_withdraw_rate=False) == 90 * RATE_SCALE // 80


def test_deposit_rate_into_empty_vault_is_one_to_one():
    assert compute_rate(0, 100, 0, is_withdraw_rate=False) == RATE_SCALE
    assert compute_rate(0, 100, 0, is_withdraw_rate=True) == 0


@pytest.mark.parametrize(
    ("steth_balance", "beth_supply", "refunded"),
    [
        (1, 2, 0),
        (99, 100, 0),
        (50 * ETH, 70 * ETH, 3 * ETH),
        (0, 5, 0),
        (123456789, 987654321, 1000),
    ],
)
def test_withdraw_rate_never_exceeds_deposit_rate(steth_balance, beth_supply, refunded):
    deposit_rate = compute_rate(steth_balance, beth_supply, refunded, is_withdraw_rate=False)
    withdraw_rate = compute_rate(steth_balance, beth_supply, refunded, is_withdraw_rate=True)
    assert withdraw_rate <= RATE_SCALE <= deposit_rate


@pytest.mark.parametrize(
    ("delta", "stable"),
    [
        (0, True),
        (1, True),
        (-1, True),
        (STETH_SHARE_PRICE_MAX_ERROR, True),
        (-STETH_SHARE_PRICE_MAX_ERROR, True),
        (STETH_SHARE_PRICE_MAX_ERROR + 1, False),
        (-STETH_SHARE_PRICE_MAX_ERROR - 1, False),
        (10**15, False),
    ],
)
def test_share_price_stability_tolerance(delta, stable):
    baseline = 1_050_000_000_000_000_000
    assert is_share_price_stable(baseline + delta, baseline) is stable


def test_steth_share_price():
    assert steth_share_price(1212 * ETH, 1200 * ETH) == 1_010_000_000_000_000_000


def test_peg_status_aggregates_outputs():
    status = peg_status(
        steth_balance=90,
        beth_supply=100,
        total_beth_refunded=0,
        share_price=ETH + 11,
        last_liquidation_share_price=ETH,
        operations_allowed=True,
    )
    assert status.withdraw_rate < status.deposit_rate
    assert status.share_price_drift == 11
    assert not status.is_stable
    assert not status.can_deposit_or_withdraw


def test_vault_rate_is_one_to_one_after_plain_deposits(d):
    d.deposit(ALICE, 100 * ETH)
    assert d.vault.get_rate() == RATE_SCALE
    assert d.vault.get_withdraw_rate() == RATE_SCALE

    steth_locked, beth_minted = d.deposit(BOB, 10 * ETH)
    assert (steth_locked, beth_minted) == (10 * ETH, 10 * ETH)


def test_vault_rates_after_penalty(d):
    d.deposit(ALICE, 100 * ETH)
    # 10% slashing: every stETH balance, including the vault's, drops to 90%.
    d.steth.rebase(-(d.steth.total_pooled_ether // 10))
    assert d.steth.balance_of(d.vault.address) == 90 * ETH
    assert not d.vault.is_stable()

    d.rebaseline()
    assert d.vault.is_stable()
    assert d.vault.get_rate() == 1_111_111_111_111_111_111
    assert d.vault.get_withdraw_rate() == 900_000_000_000_000_000


def test_vault_stability_follows_share_price_baseline(d):
    d.deposit(ALICE, 10 * ETH)
    peg = d.vault.storage.peg
    price = d.vault.get_steth_share_price()

    peg.last_liquidation_share_price = price - STETH_SHARE_PRICE_MAX_ERROR
    assert d.vault.is_stable()
    assert d.vault.can_deposit_or_withdraw()

    peg.last_liquidation_share_price = price - STETH_SHARE_PRICE_MAX_ERROR - 1
    assert not d.vault.is_stable()
    assert not d.vault.can_deposit_or_withdraw()

    d.steth.approve(BOB, d.vault.address, ETH)
    with pytest.raises(PegUnstable):
        d.vault.submit(BOB, ETH, TERRA_ADDRESS, b"", CURRENT_VERSION)


def test_rewards_rebase_pauses_deposits_until_harvest(d):
    d.deposit(ALICE, 10 * ETH)
    d.steth.rebase(d.steth.total_pooled_ether // 100)
    assert not d.vault.can_deposit_or_withdraw()

    d.rebaseline()
    assert d.vault.can_deposit_or_withdraw()
