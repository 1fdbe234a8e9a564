"""
Holding-related models for the sweep client.

Immutable data structures for token accounts, asset metadata and wallet
snapshots.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Tuple

from ..constants import NATIVE_DECIMALS, NATIVE_PRICE_KEY, TOKEN_PROGRAM_ID
from ..utils import raw_to_display


@dataclass(frozen=True)
class Holding:
    """One token account owned by the wallet.

    Attributes:
        account_address: Address of the token account (unique per holding)
        asset_id: Mint address of the token
        raw_amount: Balance in the token's smallest unit
        decimals: Number of fractional digits of the mint
        token_program: Token program that owns the account
    """
    account_address: str
    asset_id: str
    raw_amount: int
    decimals: int
    token_program: str = TOKEN_PROGRAM_ID

    def __post_init__(self):
        if isinstance(self.raw_amount, bool) or not isinstance(self.raw_amount, int):
            raise ValueError(f"raw_amount must be an integer, got {self.raw_amount!r}")
        if self.raw_amount < 0:
            raise ValueError(f"raw_amount cannot be negative, got {self.raw_amount}")
        if self.decimals < 0:
            raise ValueError(f"decimals cannot be negative, got {self.decimals}")

    @property
    def display_amount(self) -> Decimal:
        """Human readable amount, derived from raw_amount."""
        return raw_to_display(self.raw_amount, self.decimals)

    @property
    def is_empty(self) -> bool:
        return self.raw_amount == 0


@dataclass(frozen=True)
class AssetRef:
    """Asset identifier and precision, the input of price resolution."""
    asset_id: str
    decimals: int

    def __post_init__(self):
        if self.decimals < 0:
            raise ValueError(f"decimals cannot be negative, got {self.decimals}")


@dataclass(frozen=True)
class AssetMetadata:
    """Display metadata for a mint. Every field but asset_id may be missing."""
    asset_id: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    logo_uri: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.logo_uri)


@dataclass(frozen=True)
class WalletSnapshot:
    """Point-in-time view of a wallet's holdings, prices and metadata."""
    owner: str
    native_balance: int
    holdings: Tuple[Holding, ...]
    prices: Dict[str, float] = field(default_factory=dict)
    metadata: Dict[str, AssetMetadata] = field(default_factory=dict)
    fetched_at: float = 0.0

    @property
    def native_display_amount(self) -> Decimal:
        return raw_to_display(self.native_balance, NATIVE_DECIMALS)

    @property
    def native_usd_value(self) -> Optional[float]:
        """USD value of the native balance, None when unpriced."""
        price = self.prices.get(NATIVE_PRICE_KEY)
        if price is None:
            return None
        return float(self.native_display_amount) * price

    def usd_value(self, holding: Holding) -> Optional[float]:
        """USD value of a holding, None when its asset is unpriced."""
        price = self.prices.get(holding.asset_id)
        if price is None:
            return None
        return float(holding.display_amount) * price

    @property
    def total_usd_value(self) -> float:
        """Sum of every priced balance; unpriced balances count as zero."""
        total = self.native_usd_value or 0.0
        for holding in self.holdings:
            total += self.usd_value(holding) or 0.0
        return total
