"""CLI and main logic."""

import argparse
import os
import sys

from beth_vault.constants import ANCHOR_VAULT_MAINNET, BLOCKS_PER_DAY, DEFAULT_LOG_CHUNK_SIZE

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Peg and harvest status of a deployed bETH AnchorVault.")
    p.add_argument(
        "--rpc-url",
        default=None,
        help="Execution-layer RPC URL. Required if ETH_RPC_URL environment variable is not set.",
    )
    p.add_argument(
        "--vault",
        default=ANCHOR_VAULT_MAINNET,
        help="AnchorVault address (resolves tokens and connectors). Default: mainnet vault.",
    )
    p.add_argument(
        "--block",
        default="latest",
        help="Block number to read state at. Default: latest.",
    )
    p.add_argument(
        "--history-days",
        type=int,
        default=0,
        help="Also summarize Deposited/Withdrawn/RewardsCollected events of the last N days.",
    )
    p.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable caching for this run (fetch all logs fresh from network).",
    )
    return p.parse_args(argv)


def _block_identifier(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    use_cache = not args.no_cache

    try:
        from web3 import Web3
    except ImportError as ex:  # pragma: no cover
        print("Missing dependency. Run: pip install beth-vault", file=sys.stderr)
        raise SystemExit(2) from ex

    from beth_vault.blockchain import collect_vault_events, summarize_events
    from beth_vault.console import print_event_summary, print_harvest_preview, print_peg_status, print_vault_config
    from beth_vault.onchain import load_onchain_vault

    rpc_url = args.rpc_url or os.getenv("ETH_RPC_URL")
    if not rpc_url:
        print(
            "Error: RPC URL is required. Provide --rpc-url or set ETH_RPC_URL environment variable.",
            file=sys.stderr,
        )
        return 2

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
    if not w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return 2

    block_identifier = _block_identifier(args.block)
    try:
        vault = load_onchain_vault(w3, args.vault, block_identifier=block_identifier)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"Error: failed to read AnchorVault state ({args.vault}): {ex}", file=sys.stderr)
        return 2

    storage = vault.storage
    print_vault_config(args.vault, storage)

    if not storage.state.is_live:
        print("ℹ️  Vault is not initialized (or petrified); nothing else to show.", file=sys.stderr)
        return 0

    try:
        print_peg_status(vault.peg_status())
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"⚠️  Peg status unavailable: {ex}", file=sys.stderr)

    try:
        plan = vault.preview_rewards()
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"⚠️  Harvest preview failed: {ex}", file=sys.stderr)
    else:
        print_harvest_preview(
            plan,
            last_liquidation_time=storage.peg.last_liquidation_time,
            now=vault.host.now(),
        )

    if args.history_days > 0:
        records = collect_vault_events(
            w3,
            args.vault,
            days=args.history_days,
            blocks_per_day=BLOCKS_PER_DAY,
            log_chunk_size=DEFAULT_LOG_CHUNK_SIZE,
            use_cache=use_cache,
        )
        print_event_summary(summarize_events(records), days=args.history_days)

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
