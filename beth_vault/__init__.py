"""bETH anchor vault: stETH custody, bETH peg and rewards harvesting."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the beth-vault script."""
    import sys

    from beth_vault.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _clear_cache_entry_point() -> NoReturn:
    """Entry point for clearing the cache."""
    from beth_vault.cache import clear_cache

    clear_cache()
    raise SystemExit(0)
