"""Console output formatting."""

from datetime import datetime, timezone

from beth_vault.constants import ETHERSCAN_BASE, STETH_SHARE_PRICE_MAX_ERROR
from beth_vault.formatters import (
    format_bytes32,
    format_duration,
    format_eth,
    format_rate,
    format_share_price,
    format_wei_sci,
    short_address,
)
from beth_vault.models import HarvestPlan, PegStatus, VaultStorage


def _ts(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def print_vault_config(vault_address: str, storage: VaultStorage) -> None:
    state = storage.state
    config = storage.config
    print("=" * 70)
    print("🏦 bETH ANCHOR VAULT")
    print(f"   {ETHERSCAN_BASE}/address/{vault_address}")
    print("=" * 70)
    if state.is_petrified:
        version_label = "petrified"
    else:
        version_label = str(state.version)
    status = "🟢 operations allowed" if state.operations_allowed else "🔴 operations stopped"
    print(f"   Version: {version_label}  •  {status}")
    admin_label = "🪨 ossified (no admin)" if state.is_ossified else state.admin
    print(f"   Admin:              {admin_label}")
    print(f"   Emergency admin:    {short_address(state.emergency_admin)}")
    print("   " + "─" * 50)
    print(f"   stETH:              {short_address(state.steth_token)}")
    print(f"   bETH:               {short_address(state.beth_token)}")
    print(f"   Bridge connector:   {short_address(config.bridge_connector)}")
    print(f"   Rewards liquidator: {short_address(config.rewards_liquidator)}")
    print(f"   Insurance:          {short_address(config.insurance_connector)}")
    print(f"   Rewards distributor (Terra): {format_bytes32(config.anchor_rewards_distributor)}")
    print(f"   Liquidations admin: {short_address(config.liquidations_admin)}")
    print(
        f"   Harvest intervals:  admin after {format_duration(config.no_liquidation_interval)}, "
        f"anyone after {format_duration(config.restricted_liquidation_interval)}"
    )
    print("")


def print_peg_status(status: PegStatus) -> None:
    print("⚖️  PEG")
    print(f"   stETH held:        {format_eth(status.steth_balance, decimals=6, unit='stETH')}")
    print(f"   bETH supply:       {format_eth(status.beth_supply, decimals=6, unit='bETH')}")
    if status.total_beth_refunded:
        print(f"   bETH refunded:     {format_eth(status.total_beth_refunded, decimals=6, unit='bETH')} (pending burn)")
    collateral_ok = status.deposit_rate == status.withdraw_rate
    print(f"   Collateral:        {'✅ fully backed' if collateral_ok else '⚠️  under-collateralized'}")
    print(f"   Deposit rate:      {format_rate(status.deposit_rate)} bETH/stETH")
    print(f"   Withdraw rate:     {format_rate(status.withdraw_rate)} stETH/bETH")
    print(f"   Share price:       {format_share_price(status.share_price)}")
    print(f"   Harvest baseline:  {format_share_price(status.last_liquidation_share_price)}")
    drift = status.share_price_drift
    stable_label = "✅ stable" if status.is_stable else "🚧 moved"
    print(f"   Drift:             {drift:+d} wei (tolerance ±{STETH_SHARE_PRICE_MAX_ERROR})  {stable_label}")
    can = "✅ yes" if status.can_deposit_or_withdraw else "⛔ no"
    print(f"   Deposits/withdrawals open: {can}")
    print("")


def print_harvest_preview(plan: HarvestPlan, *, last_liquidation_time: int, now: int) -> None:
    print("🌾 PENDING HARVEST")
    print(f"   Last harvest:      {_ts(last_liquidation_time)} ({format_duration(now - last_liquidation_time)} ago)")
    print(f"   Vault shares:      {format_wei_sci(plan.shares_balance)}")
    print(f"   Shares burnt since last harvest: {format_wei_sci(plan.shares_burnt_since)}")
    print(f"   Corrected share price: {format_share_price(plan.share_price_corrected)}")
    if plan.has_rewards:
        print(f"   stETH to sell:     {format_eth(plan.steth_to_sell, decimals=6, unit='stETH')}")
    else:
        print("   Nothing to sell (no rewards since the last harvest)")
    print("")


def print_event_summary(summary: dict, *, days: int) -> None:
    print(f"📜 LAST {days} DAYS")
    print(
        f"   Deposits:    {summary['deposits']}  "
        f"({format_eth(summary['steth_deposited_wei'], decimals=4, unit='stETH')} → "
        f"{format_eth(summary['beth_minted_wei'], decimals=4, unit='bETH')})"
    )
    print(
        f"   Withdrawals: {summary['withdrawals']}  "
        f"({format_eth(summary['beth_withdrawn_wei'], decimals=4, unit='bETH')} → "
        f"{format_eth(summary['steth_withdrawn_wei'], decimals=4, unit='stETH')})"
    )
    print(
        f"   Harvests:    {summary['harvests']} ({summary['empty_harvests']} empty), "
        f"sold {format_eth(summary['steth_sold_wei'], decimals=4, unit='stETH')} for "
        f"{format_wei_sci(summary['ust_harvested'])} UST units"
    )
    print("")
