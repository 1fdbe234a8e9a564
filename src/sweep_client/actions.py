"""
Action normalization.

Turns the user's per-holding choices into the effective action the batch
builder acts on.
"""

import logging
from typing import Dict, Sequence

from .models.actions import ActionChoice, ActionPlan, EffectiveAction
from .models.holdings import Holding

logger = logging.getLogger(__name__)


def effective_action(holding: Holding, choice: ActionChoice, auto_close: bool) -> EffectiveAction:
    """
    Derive what should happen to a holding.

    Empty holdings can only be closed. On a funded holding destroy and
    transfer are mutually exclusive: when both are requested, destroy wins and
    a warning is attached.

    Args:
        holding: Holding to act on
        choice: User choice for the holding
        auto_close: Global "close empty accounts" toggle

    Returns:
        EffectiveAction for the holding
    """
    do_close = choice.wants_close or auto_close

    if holding.raw_amount == 0:
        return EffectiveAction(do_transfer=False, do_destroy=False, do_close=do_close)

    do_destroy = choice.wants_destroy
    do_transfer = choice.wants_transfer
    action = EffectiveAction(do_transfer=do_transfer, do_destroy=do_destroy, do_close=do_close)

    if do_destroy and do_transfer:
        message = (
            f"Holding {holding.account_address} ({holding.asset_id}) asked for both "
            f"destroy and transfer; destroying, transfer skipped"
        )
        logger.warning(message)
        action = EffectiveAction(
            do_transfer=False, do_destroy=True, do_close=do_close
        ).with_warning(message)

    return action


def resolve_actions(holdings: Sequence[Holding], plan: ActionPlan) -> Dict[str, EffectiveAction]:
    """Effective action per holding account address."""
    return {
        holding.account_address: effective_action(
            holding, plan.choice_for(holding), plan.auto_close_empty
        )
        for holding in holdings
    }
