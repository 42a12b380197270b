import pytest

from beth_vault.cli import main, parse_args
from beth_vault.console import print_harvest_preview, print_peg_status, print_vault_config
from beth_vault.constants import ANCHOR_VAULT_MAINNET, PETRIFIED_VERSION, ZERO_ADDRESS
from beth_vault.formatters import (
    as_int,
    format_bytes32,
    format_duration,
    format_eth,
    format_rate,
    format_share_price,
    format_wei_sci,
    normalize_hex_str,
    same_address,
    short_address,
)
from beth_vault.models import HarvestPlan, VaultStorage
from beth_vault.peg import peg_status

from conftest import ADMIN, ETH, START_TIME


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (True, 1),
        (False, 0),
        (5, 5),
        ("5", 5),
        ("  5  ", 5),
        ("0x10", 16),
    ],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_normalize_hex_str():
    assert normalize_hex_str(b"\x01\xff") == "0x01ff"
    assert normalize_hex_str("abc") == "0xabc"
    assert normalize_hex_str("0Xabc") == "0xabc"


def test_same_address_ignores_checksum_case():
    assert same_address("0xAbCd", "0xabcd")
    assert not same_address("0xabcd", None)


def test_short_address_and_bytes32():
    assert short_address(ZERO_ADDRESS) == "(not set)"
    assert short_address(ADMIN) == "0x00000000...000d02"
    assert format_bytes32(b"\x00" * 32) == "(not set)"
    assert format_bytes32("0x" + "AB" * 32) == "0x" + "ab" * 32


def test_format_wei_sci():
    assert format_wei_sci(0) == "0"
    assert format_wei_sci(1000) == "1e3"
    assert format_wei_sci(16900000000000) == "1.69e13"
    assert format_wei_sci(-1000) == "-1e3"


def test_format_eth_and_rates():
    assert format_eth(10**18) == "1 ETH"
    assert format_eth(10**18, approx=True).startswith("~")
    assert format_eth(15 * 10**17, unit="stETH") == "1.5 stETH"
    assert format_rate(1_111_111_111_111_111_111) == "1.111111"
    assert format_share_price(1_010_000_000_000_000_000) == "1.010000000000000000 ETH/share"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0m"),
        (59, "0m"),
        (3600, "1h"),
        (7260, "2h 1m"),
        (90061, "1d 1h 1m"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_print_vault_config_marks_ossified_and_petrified(capsys):
    storage = VaultStorage()
    storage.state.version = PETRIFIED_VERSION
    print_vault_config(ANCHOR_VAULT_MAINNET, storage)
    out = capsys.readouterr().out
    assert "Version: petrified" in out
    assert "ossified" in out
    assert "operations stopped" in out


def test_print_peg_status_flags_under_collateralization(capsys):
    status = peg_status(
        steth_balance=90 * ETH,
        beth_supply=100 * ETH,
        total_beth_refunded=0,
        share_price=ETH + 11,
        last_liquidation_share_price=ETH,
        operations_allowed=True,
    )
    print_peg_status(status)
    out = capsys.readouterr().out
    assert "under-collateralized" in out
    assert "1.111111 bETH/stETH" in out
    assert "+11 wei" in out
    assert "Deposits/withdrawals open: ⛔ no" in out


def test_print_harvest_preview(capsys):
    plan = HarvestPlan(
        share_price=ETH,
        share_price_corrected=ETH,
        previous_share_price=ETH,
        shares_burnt=0,
        shares_burnt_since=0,
        shares_balance=100 * ETH,
        steth_to_sell=0,
    )
    print_harvest_preview(plan, last_liquidation_time=START_TIME, now=START_TIME + 7200)
    out = capsys.readouterr().out
    assert "(2h ago)" in out
    assert "Nothing to sell" in out


def test_parse_args_defaults():
    args = parse_args([])
    assert args.vault == ANCHOR_VAULT_MAINNET
    assert args.block == "latest"
    assert args.history_days == 0
    assert not args.no_cache


def test_main_requires_rpc_url(monkeypatch, capsys):
    monkeypatch.delenv("ETH_RPC_URL", raising=False)
    assert main([]) == 2
    assert "RPC URL is required" in capsys.readouterr().err
