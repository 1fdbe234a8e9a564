"""
Utility functions for the sweep client.

Helper functions and utilities following functional programming principles.
"""

import math
from decimal import Decimal
from typing import Any, List, Optional, Sequence, TypeVar

from solders.pubkey import Pubkey

from .constants import NATIVE_DECIMALS

T = TypeVar("T")

_BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


def raw_to_display(raw_amount: int, decimals: int) -> Decimal:
    """Convert an integer raw amount to its display amount without rounding."""
    return Decimal(raw_amount).scaleb(-decimals)


def one_whole_unit(decimals: int) -> int:
    """Raw amount that represents exactly one whole token."""
    if decimals < 0:
        raise ValueError(f"Decimals cannot be negative: {decimals}")
    return 10 ** decimals


def parse_address(address: Any) -> Optional[Pubkey]:
    """Parse a base58 address, returning None when it is malformed."""
    if not address or not isinstance(address, str):
        return None

    # Basic validation before handing it to solders
    if not 32 <= len(address) <= 44 or not set(address) <= _BASE58_ALPHABET:
        return None

    try:
        return Pubkey.from_string(address)
    except ValueError:
        return None


def validate_address(address: Any) -> bool:
    """Validate address format."""
    return parse_address(address) is not None


def validate_url(url: Any) -> bool:
    """Validate URL format."""
    if not url or not isinstance(url, str):
        return False
    return url.startswith(("http://", "https://")) and "." in url


def usable_price(value: Any) -> Optional[float]:
    """Return value as a float price, or None for zero, negative or non-finite input."""
    if isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def dedupe_by(items: Sequence[T], key) -> List[T]:
    """Drop later items whose key was already seen, preserving order."""
    seen = set()
    result = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        result.append(item)
    return result


def chunk_list(items: List[Any], chunk_size: int) -> List[List[Any]]:
    """Split a list into chunks of specified size."""
    if chunk_size <= 0:
        raise ValueError("Chunk size must be positive")

    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


def safe_get(data: Any, path: str, default: Any = None) -> Any:
    """Safely get nested dictionary values using dot notation."""
    keys = path.split(".")
    current = data

    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current


def format_lamports(lamports: int) -> str:
    """Render lamports as a SOL string without trailing zeros."""
    return f"{raw_to_display(lamports, NATIVE_DECIMALS):f}".rstrip("0").rstrip(".") or "0"
