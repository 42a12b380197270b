"""Formatting and conversion utilities."""

from decimal import Decimal

from beth_vault.constants import RATE_SCALE, SHARE_PRICE_SCALE, ZERO_ADDRESS, ZERO_BYTES32

WEI_PER_ETH = Decimal(10**18)


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling various types."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        if v.startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def normalize_hex_str(value) -> str:
    """Normalize hex string to 0x-prefixed format."""
    if isinstance(value, (bytes, bytearray)):
        return f"0x{value.hex()}"
    if hasattr(value, "hex") and not isinstance(value, str):
        hex_str = value.hex()
        return hex_str if hex_str.startswith("0x") else f"0x{hex_str}"
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return f"0x{s[2:]}"
    return f"0x{s}"


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison (checksummed vs lowercase)."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


def short_address(address: str) -> str:
    if address == ZERO_ADDRESS:
        return "(not set)"
    return f"{address[:10]}...{address[-6:]}"


def format_bytes32(value) -> str:
    """Format a bytes32 value (Terra address slot) as 0x-prefixed hex, or '(not set)'."""
    s = normalize_hex_str(value).lower()
    if s == ZERO_BYTES32:
        return "(not set)"
    return s


def format_wei_sci(value: int, *, sig: int = 3) -> str:
    """Format wei value in scientific notation."""
    if value == 0:
        return "0"
    s = format(Decimal(abs(value)), f".{max(0, sig - 1)}e")  # 1.69e+13
    mant, exp = s.split("e")
    mant = mant.rstrip("0").rstrip(".")
    exp_i = int(exp)
    sign = "-" if value < 0 else ""
    return f"{sign}{mant}e{exp_i}"


def format_eth(value_wei: int, *, decimals: int = 9, approx: bool = False, unit: str = "ETH") -> str:
    """Format wei value as ETH (or any 18-decimals token via `unit`)."""
    eth = Decimal(value_wei) / WEI_PER_ETH
    s = f"{eth:.{decimals}f}".rstrip("0").rstrip(".")
    prefix = "~" if approx else ""
    return f"{prefix}{s} {unit}"


def format_rate(rate: int, *, decimals: int = 6) -> str:
    """Format a 1e18-scaled rate, e.g. 1.111111."""
    r = Decimal(rate) / Decimal(RATE_SCALE)
    return f"{r:.{decimals}f}"


def format_share_price(share_price: int) -> str:
    """Format a stETH share price with full wei precision."""
    whole = Decimal(share_price) / Decimal(SHARE_PRICE_SCALE)
    return f"{whole:.18f} ETH/share"


def format_duration(seconds: int) -> str:
    """Format a duration as e.g. '1d 2h 3m'."""
    if seconds <= 0:
        return "0m"
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)
