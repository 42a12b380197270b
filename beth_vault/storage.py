"""Persisted vault record: a flat, schema-versioned, append-only layout.

Fields are only ever appended to `STORAGE_LAYOUT`, never reordered or
removed, so a record written by an older schema loads with the appended fields
at their defaults. Moving a legacy record to the current schema is done by
`AnchorVault.finalize_upgrade_v3`, which needs the collaborators.
"""

import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from beth_vault.models import ConfigRegistry, PegState, RefundLedger, VaultState, VaultStorage

SCHEMA_VERSION_KEY = "schema_version"

# (record attribute on VaultStorage, field name), in storage order.
STORAGE_LAYOUT: tuple[tuple[str, str], ...] = (
    # v1
    ("state", "admin"),
    ("state", "steth_token"),
    ("state", "beth_token"),
    ("config", "bridge_connector"),
    ("config", "rewards_liquidator"),
    ("config", "anchor_rewards_distributor"),
    ("config", "liquidations_admin"),
    ("config", "no_liquidation_interval"),
    ("config", "restricted_liquidation_interval"),
    ("peg", "last_liquidation_time"),
    ("peg", "last_liquidation_share_price"),
    ("state", "version"),
    # v2
    ("state", "emergency_admin"),
    ("state", "operations_allowed"),
    ("refunds", "total_beth_refunded"),
    # v3
    ("config", "insurance_connector"),
    ("peg", "last_liquidation_shares_burnt"),
)

# Defaults for fields missing from an initialized legacy record, where the
# model default would be wrong. v1 vaults had no stop switch.
LEGACY_DEFAULTS: dict[str, Any] = {
    "operations_allowed": True,
}

_RECORD_TYPES = {
    "state": VaultState,
    "config": ConfigRegistry,
    "peg": PegState,
    "refunds": RefundLedger,
}


def _check_layout() -> None:
    declared = {(record, f.name) for record, cls in _RECORD_TYPES.items() for f in fields(cls)}
    if declared != set(STORAGE_LAYOUT):
        raise RuntimeError(f"storage layout out of sync with models: {sorted(declared ^ set(STORAGE_LAYOUT))}")


_check_layout()


def dump_storage(storage: VaultStorage) -> dict[str, Any]:
    """Serialize the vault record to a JSON-compatible dict in layout order."""
    out: dict[str, Any] = {SCHEMA_VERSION_KEY: storage.state.version}
    for record, name in STORAGE_LAYOUT:
        out[name] = getattr(getattr(storage, record), name)
    return out


def load_storage(data: dict[str, Any]) -> VaultStorage:
    """
    Rebuild a vault record, filling fields newer than the record with defaults.

    Raises ValueError for unknown fields or when the stored version disagrees with `schema_version`.
    """
    known = {name for _, name in STORAGE_LAYOUT} | {SCHEMA_VERSION_KEY}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"unknown storage fields: {sorted(unknown)}")

    version = int(data.get("version", data.get(SCHEMA_VERSION_KEY, 0)))
    schema_version = int(data.get(SCHEMA_VERSION_KEY, version))
    if schema_version != version:
        raise ValueError(f"schema_version {schema_version} does not match stored version {version}")

    storage = VaultStorage()
    for record, name in STORAGE_LAYOUT:
        if name in data:
            setattr(getattr(storage, record), name, data[name])
        elif version != 0 and name in LEGACY_DEFAULTS:
            setattr(getattr(storage, record), name, LEGACY_DEFAULTS[name])
    storage.state.version = version
    return storage


def save_storage_file(path: Path, storage: VaultStorage) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(dump_storage(storage), f, indent=2)


def load_storage_file(path: Path) -> VaultStorage:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Unexpected storage file format (expected JSON object)")
    return load_storage(data)
