"""JSON file cache for RPC responses (event logs, blocks)."""

import hashlib
import json
import os
import shutil
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from beth_vault.constants import CACHE_DIR_NAME, CACHE_VERSION


def get_cache_dir() -> Path:
    """Cache directory under XDG_CACHE_HOME, or ~/.cache when it is unset."""
    cache_home = os.getenv("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    cache_dir = base / CACHE_DIR_NAME
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def clear_cache() -> None:
    cache_dir = get_cache_dir()
    if cache_dir.exists():
        shutil.rmtree(cache_dir)
        print("✅ Cache cleared successfully.", file=sys.stderr)
    else:
        print("ℹ️  Cache directory does not exist (nothing to clear).", file=sys.stderr)


def cache_key(prefix: str, *parts: Any) -> str:
    """Deterministic cache key; bumping CACHE_VERSION invalidates every entry."""
    key_str = f"{prefix}:{CACHE_VERSION}:" + ":".join(str(p) for p in parts)
    return hashlib.sha256(key_str.encode()).hexdigest()


def get_cached(key: str) -> Any | None:
    """Cached value for `key`, or None when missing or unreadable."""
    cache_file = get_cache_dir() / f"{key}.json"
    if not cache_file.exists():
        return None
    try:
        with cache_file.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        # A corrupted entry is treated as a miss and overwritten on the next write.
        return None


def set_cached(key: str, data: Any) -> None:
    cache_file = get_cache_dir() / f"{key}.json"
    try:
        with cache_file.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=None, separators=(",", ":"))
    except (OSError, TypeError) as ex:
        print(f"⚠️  Failed to write cache entry {key[:12]}: {ex}", file=sys.stderr)


def cached(key: str, fetch: Callable[[], Any], *, use_cache: bool = True) -> Any:
    """Return the cached value for `key`, calling `fetch` and storing its result on a miss."""
    if use_cache:
        hit = get_cached(key)
        if hit is not None:
            return hit
    value = fetch()
    if use_cache:
        set_cached(key, value)
    return value
