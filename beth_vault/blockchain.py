"""Vault event history from chain logs, with caching."""

import sys
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from tqdm import tqdm

from beth_vault.cache import cache_key, cached
from beth_vault.constants import VAULT_EVENT_DATA_TYPES, VAULT_EVENT_SIGNATURES
from beth_vault.formatters import as_int, normalize_hex_str
from beth_vault.models import VaultEventRecord

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def topic0(signature: str) -> str:
    """Compute topic0 (event signature hash) for an event signature."""
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    return normalize_hex_str(Web3.keccak(text=signature))


def iter_block_ranges(start: int, end: int, chunk_size: int) -> Iterable[tuple[int, int]]:
    """Iterate over block ranges in chunks."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    cur = start
    while cur <= end:
        yield cur, min(end, cur + chunk_size - 1)
        cur += chunk_size


def get_logs(w3: "Web3", filter_params: dict[str, Any], use_cache: bool = True) -> list[dict[str, Any]]:
    """eth_getLogs through the raw provider (bypasses web3 middleware formatting)."""

    def fetch() -> list[dict[str, Any]]:
        response = w3.provider.make_request("eth_getLogs", [filter_params])
        if "error" in response:
            raise RuntimeError(f"RPC error: {response['error']}")
        return response.get("result", [])

    key = cache_key(
        "logs",
        filter_params.get("address", ""),
        filter_params.get("fromBlock", ""),
        filter_params.get("toBlock", ""),
        str(filter_params.get("topics", [])),
    )
    return cached(key, fetch, use_cache=use_cache)


def topic_to_address(topic: str) -> str:
    """Indexed address topics are left-padded to 32 bytes."""
    return "0x" + normalize_hex_str(topic)[-40:]


def decode_vault_log(log: dict[str, Any], names_by_topic: dict[str, str]) -> VaultEventRecord | None:
    """Decode a raw log into a VaultEventRecord; None for logs of other events."""
    from eth_abi import decode  # pylint: disable=import-outside-toplevel

    topics = [normalize_hex_str(t).lower() for t in log.get("topics", [])]
    if not topics or topics[0] not in names_by_topic:
        return None
    name = names_by_topic[topics[0]]

    data_hex = normalize_hex_str(log.get("data", "0x"))[2:]
    values = decode(VAULT_EVENT_DATA_TYPES[name], bytes.fromhex(data_hex))
    values = tuple(normalize_hex_str(v) if isinstance(v, (bytes, bytearray)) else int(v) for v in values)

    return VaultEventRecord(
        name=name,
        block_number=as_int(log["blockNumber"]),
        tx_hash=normalize_hex_str(log["transactionHash"]),
        log_index=as_int(log["logIndex"]),
        account=topic_to_address(topics[1]) if len(topics) > 1 else None,
        values=values,
    )


def collect_vault_events(
    w3: "Web3",
    vault_address: str,
    *,
    days: int,
    blocks_per_day: int,
    log_chunk_size: int,
    use_cache: bool = True,
) -> list[VaultEventRecord]:
    """Collect Deposited/Withdrawn/RewardsCollected events from the last `days` days, oldest first."""
    names_by_topic = {topic0(sig).lower(): name for name, sig in VAULT_EVENT_SIGNATURES.items()}

    latest_block = int(w3.eth.block_number)
    window = max(1, int(days) * int(blocks_per_day))
    scan_start = max(0, latest_block - window + 1)
    ranges = list(iter_block_ranges(scan_start, latest_block, log_chunk_size))
    vault_addr = normalize_hex_str(vault_address)

    logs: list[dict[str, Any]] = []
    with tqdm(total=len(ranges), desc="🔍 Scanning vault logs", unit="chunk", file=sys.stderr) as pbar:
        for a, b in ranges:
            filter_params = {
                "address": vault_addr,
                "fromBlock": hex(a),
                "toBlock": hex(b),
                # OR-match on any of the event signatures.
                "topics": [list(names_by_topic)],
            }
            # The latest chunk keeps growing until it is finalized; never cache it.
            logs.extend(get_logs(w3, filter_params, use_cache=use_cache and b < latest_block))
            pbar.update(1)
        pbar.set_postfix(logs=len(logs))

    records: list[VaultEventRecord] = []
    for log in logs:
        try:
            record = decode_vault_log(log, names_by_topic)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            tqdm.write(f"⚠️  Skipping undecodable log in tx {log.get('transactionHash')}: {ex}", file=sys.stderr)
            continue
        if record is not None:
            records.append(record)

    records.sort(key=lambda r: (r.block_number, r.log_index))
    return records


def summarize_events(records: list[VaultEventRecord]) -> dict[str, Any]:
    """Totals per event kind: counts, stETH locked/paid out, bETH minted/burned, UST harvested."""
    summary: dict[str, Any] = {
        "deposits": 0,
        "withdrawals": 0,
        "harvests": 0,
        "empty_harvests": 0,
        "steth_deposited_wei": 0,
        "beth_minted_wei": 0,
        "beth_withdrawn_wei": 0,
        "steth_withdrawn_wei": 0,
        "steth_sold_wei": 0,
        "ust_harvested": 0,
    }
    for r in records:
        if r.name == "Deposited":
            amount, _terra_address, beth_amount = r.values
            summary["deposits"] += 1
            summary["steth_deposited_wei"] += amount
            summary["beth_minted_wei"] += beth_amount
        elif r.name == "Withdrawn":
            beth_amount, steth_amount = r.values
            summary["withdrawals"] += 1
            summary["beth_withdrawn_wei"] += beth_amount
            summary["steth_withdrawn_wei"] += steth_amount
        elif r.name == "RewardsCollected":
            steth_amount, ust_amount = r.values
            summary["harvests"] += 1
            if steth_amount == 0:
                summary["empty_harvests"] += 1
            summary["steth_sold_wei"] += steth_amount
            summary["ust_harvested"] += ust_amount
    return summary
