import pytest

from beth_vault import events
from beth_vault.constants import CURRENT_VERSION, REFUND_BETH_AMOUNT, REFUND_COMMENT, REFUND_RECIPIENT, ZERO_ADDRESS
from beth_vault.errors import AlreadyInitialized, InsufficientRefundBalance, NotInitialized, PegUnstable, Unauthorized
from beth_vault.local import LocalLedgerError
from beth_vault.storage import STORAGE_LAYOUT, dump_storage, load_storage
from beth_vault.vault import AnchorVault

from conftest import ADMIN, ALICE, BOB, ETH, STRANGER, VAULT


def test_refund_pays_steth_and_counts_beth_as_burned(d):
    d.deposit(ALICE, 10 * ETH)

    steth_amount = d.vault.refund_for_burned_beth(ADMIN, 2 * ETH, BOB, "lost on Terra")

    assert steth_amount == 2 * ETH
    assert d.vault.total_beth_refunded == 2 * ETH
    assert d.steth.balance_of(BOB) == 102 * ETH
    assert d.steth.balance_of(VAULT) == 8 * ETH
    # Refunded bETH is still in circulation but no longer backed.
    assert d.beth.total_supply() == 10 * ETH
    assert d.vault.get_withdraw_rate() == ETH
    assert d.vault.events[-1] == events.Refunded(BOB, 2 * ETH, 2 * ETH, "lost on Terra")


def test_refund_rolls_back_ledger_when_peg_unstable(d):
    d.deposit(ALICE, 10 * ETH)
    d.steth.rebase(ETH)

    with pytest.raises(PegUnstable):
        d.vault.refund_for_burned_beth(ADMIN, ETH, BOB, "lost")
    assert d.vault.total_beth_refunded == 0


def test_burn_refunded_beth_cannot_exceed_refunded(d):
    d.deposit(ALICE, 10 * ETH)
    d.vault.refund_for_burned_beth(ADMIN, 2 * ETH, BOB, "lost")

    with pytest.raises(InsufficientRefundBalance):
        d.vault.burn_refunded_beth(ADMIN, 3 * ETH)
    assert d.vault.total_beth_refunded == 2 * ETH


def test_burn_refunded_beth_held_by_vault(d):
    d.deposit(ALICE, 10 * ETH)
    d.vault.refund_for_burned_beth(ADMIN, 2 * ETH, BOB, "lost")
    d.bridge_back(ALICE, 2 * ETH)
    d.beth.transfer(ALICE, VAULT, 2 * ETH)

    d.vault.burn_refunded_beth(ADMIN, 2 * ETH)

    assert d.vault.total_beth_refunded == 0
    assert d.beth.total_supply() == 8 * ETH
    assert d.beth.balance_of(VAULT) == 0
    assert d.vault.events[-1] == events.RefundedBethBurned(2 * ETH)
    # 8 stETH back 8 bETH again.
    assert d.vault.get_withdraw_rate() == ETH


def test_burn_refunded_beth_needs_the_tokens_in_the_vault(d):
    d.deposit(ALICE, 10 * ETH)
    d.vault.refund_for_burned_beth(ADMIN, 2 * ETH, BOB, "lost")

    with pytest.raises(LocalLedgerError):
        d.vault.burn_refunded_beth(ADMIN, 2 * ETH)
    assert d.vault.total_beth_refunded == 2 * ETH


def test_refund_rejects_negative_amount(d):
    with pytest.raises(ValueError):
        d.vault.refund_for_burned_beth(ADMIN, -1, BOB, "lost")


def _legacy_v2_vault(d) -> AnchorVault:
    data = dump_storage(d.vault.storage)
    v3_fields = [name for _, name in STORAGE_LAYOUT[-2:]]
    for name in v3_fields:
        del data[name]
    data["version"] = data["schema_version"] = 2
    return AnchorVault(VAULT, d.host, d.host.resolve, storage=load_storage(data))


def test_finalize_upgrade_v3_applies_refund_once(d):
    d.deposit(ALICE, 10 * ETH)
    vault = _legacy_v2_vault(d)
    assert vault.storage.config.insurance_connector == ZERO_ADDRESS

    vault.finalize_upgrade_v3(ADMIN)

    assert vault.version == CURRENT_VERSION
    assert vault.total_beth_refunded == REFUND_BETH_AMOUNT
    assert d.steth.balance_of(REFUND_RECIPIENT) == REFUND_BETH_AMOUNT
    assert vault.storage.peg.last_liquidation_shares_burnt == 0
    assert vault.events == [
        events.Refunded(REFUND_RECIPIENT, REFUND_BETH_AMOUNT, REFUND_BETH_AMOUNT, REFUND_COMMENT),
        events.VersionIncremented(CURRENT_VERSION),
    ]

    with pytest.raises(AlreadyInitialized):
        vault.finalize_upgrade_v3(ADMIN)
    assert vault.total_beth_refunded == REFUND_BETH_AMOUNT


def test_finalize_upgrade_v3_snapshots_insurance_burns(d):
    d.deposit(ALICE, 10 * ETH)
    vault = _legacy_v2_vault(d)
    vault.set_insurance_connector(ADMIN, d.insurance.address)
    # Only the counter matters here; actually burning would move the share price.
    d.insurance.shares_burnt = 7 * ETH

    vault.finalize_upgrade_v3(ADMIN)

    assert vault.storage.peg.last_liquidation_shares_burnt == 7 * ETH


def test_finalize_upgrade_v3_is_admin_only(d):
    d.deposit(ALICE, 10 * ETH)
    vault = _legacy_v2_vault(d)
    with pytest.raises(Unauthorized):
        vault.finalize_upgrade_v3(STRANGER)
    assert vault.version == 2
    assert vault.total_beth_refunded == 0


def test_finalize_upgrade_v3_rejects_current_and_fresh_records(d):
    with pytest.raises(AlreadyInitialized):
        d.vault.finalize_upgrade_v3(ADMIN)

    fresh = AnchorVault(VAULT, d.host, d.host.resolve)
    with pytest.raises(NotInitialized):
        fresh.finalize_upgrade_v3(ADMIN)


def test_finalize_upgrade_v3_reverts_without_enough_steth(d):
    d.deposit(ALICE, ETH)
    vault = _legacy_v2_vault(d)

    with pytest.raises(LocalLedgerError):
        vault.finalize_upgrade_v3(ADMIN)
    assert vault.version == 2
    assert vault.total_beth_refunded == 0
    assert d.steth.balance_of(VAULT) == ETH
