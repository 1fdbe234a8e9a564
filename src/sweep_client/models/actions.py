"""
Action models for the sweep client.

Per-holding user intent and the effective action derived from it.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Optional, Tuple

from .holdings import Holding


@dataclass(frozen=True)
class ActionChoice:
    """What the user asked for on a holding. The three flags are independent."""
    wants_transfer: bool = False
    wants_destroy: bool = False
    wants_close: bool = False


NO_ACTION = ActionChoice()


@dataclass(frozen=True)
class ActionPlan:
    """
    User choices for a whole wallet.

    Choices keyed by account address take precedence over choices keyed by
    asset id; an asset-level choice applies to every account holding that
    asset.

    Attributes:
        choices_by_account: Choice per token account address
        choices_by_asset: Choice per mint, used when no account entry exists
        auto_close_empty: Close every empty token account
        sweep_native: Send the native balance (minus fee buffer) to the value recipient
    """
    choices_by_account: Dict[str, ActionChoice] = field(default_factory=dict)
    choices_by_asset: Dict[str, ActionChoice] = field(default_factory=dict)
    auto_close_empty: bool = False
    sweep_native: bool = True

    def choice_for(self, holding: Holding) -> ActionChoice:
        """Return the choice that applies to a holding."""
        choice = self.choices_by_account.get(holding.account_address)
        if choice is None:
            choice = self.choices_by_asset.get(holding.asset_id, NO_ACTION)
        return choice

    def with_account_choice(self, account_address: str, choice: ActionChoice) -> "ActionPlan":
        choices = dict(self.choices_by_account)
        choices[account_address] = choice
        return replace(self, choices_by_account=choices)

    def with_asset_choice(self, asset_id: str, choice: ActionChoice) -> "ActionPlan":
        choices = dict(self.choices_by_asset)
        choices[asset_id] = choice
        return replace(self, choices_by_asset=choices)

    def apply_to_asset(
        self, holdings: Iterable[Holding], asset_id: str, choice: ActionChoice
    ) -> "ActionPlan":
        """Set the same account-level choice on every holding of an asset."""
        choices = dict(self.choices_by_account)
        for holding in holdings:
            if holding.asset_id == asset_id:
                choices[holding.account_address] = choice
        return replace(self, choices_by_account=choices)


@dataclass(frozen=True)
class EffectiveAction:
    """Normalized action for one holding."""
    do_transfer: bool = False
    do_destroy: bool = False
    do_close: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def is_noop(self) -> bool:
        return not (self.do_transfer or self.do_destroy or self.do_close)

    def with_warning(self, message: Optional[str]) -> "EffectiveAction":
        if not message:
            return self
        return replace(self, warnings=self.warnings + (message,))
