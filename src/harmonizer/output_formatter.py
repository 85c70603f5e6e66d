"""Console formatting helpers for the harmonizer CLI."""

from typing import Tuple

BANNER_TITLE = " AT-TPC Harmonizer "
BANNER_WIDTH = 61

_BYTE_UNITS: Tuple[str, ...] = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def format_bytes(size: float) -> str:
    """Format a byte count as a human readable string (powers of 1024).

    Args:
        size: Number of bytes

    Returns:
        String such as '512 B' or '1.5 GiB'
    """
    if size < 0:
        raise ValueError(f"Byte count must be non-negative, got {size}")

    value = float(size)
    for unit in _BYTE_UNITS:
        if value < 1024.0 or unit == _BYTE_UNITS[-1]:
            break
        value /= 1024.0

    if unit == "B":
        return f"{int(value)} B"
    return f"{value:.1f} {unit}"


def banner() -> str:
    """Return the opening banner line."""
    return BANNER_TITLE.center(BANNER_WIDTH, "-")


def rule() -> str:
    """Return the closing rule line."""
    return "-" * BANNER_WIDTH
