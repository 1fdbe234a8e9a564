"""
Batch builder.

Builds the ordered operations of one sweep transaction from a fresh holdings
snapshot and an action plan. The builder is a pure function: it performs no
I/O, so the caller resolves which receiving accounts already exist before
calling it, and a rebuild with the same inputs yields the same batch.

Ordering per batch:
    1. native transfer (if any)
    2. per holding, in snapshot order:
       empty + close   -> close
       funded          -> destroy | (create receiving account) transfer
                          then close, once the account has been emptied

Replayed in order, the operations never close a funded account and never
reference a receiving account before the operation that creates it.
"""

import logging
from dataclasses import dataclass, replace
from typing import Collection, List, Optional, Sequence, Set

from solders.pubkey import Pubkey

from .actions import resolve_actions
from .constants import DEFAULT_FEE_BUFFER_LAMPORTS, MAX_U64
from .exceptions import EmptyBatch, ValidationError
from .instructions import (
    build_burn_checked_ix,
    build_close_account_ix,
    build_create_receiving_account_ix,
    build_native_transfer_ix,
    build_transfer_checked_ix,
    derive_receiving_account,
)
from .models.actions import ActionPlan, EffectiveAction
from .models.batch import Batch, Operation, OperationKind
from .models.holdings import Holding
from .utils import format_lamports, parse_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _HoldingStep:
    """Parsed addresses and effective action for one holding."""
    holding: Holding
    action: EffectiveAction
    account: Pubkey
    mint: Pubkey
    token_program: Pubkey
    receiving_account: Optional[Pubkey]


def _require_address(address: str, label: str) -> Pubkey:
    pubkey = parse_address(address)
    if pubkey is None:
        raise ValidationError(f"Invalid {label} address: {address!r}")
    return pubkey


def native_send_amount(native_balance: int, reserve: int) -> int:
    """Lamports that can leave the wallet while keeping reserve behind."""
    return max(native_balance - reserve, 0)


def _prepare_steps(
    holdings: Sequence[Holding],
    plan: ActionPlan,
    asset_recipient: Pubkey,
) -> List[_HoldingStep]:
    seen: Set[str] = set()
    for holding in holdings:
        if holding.account_address in seen:
            raise ValidationError(f"Duplicate holding account: {holding.account_address}")
        seen.add(holding.account_address)

        if holding.raw_amount > MAX_U64:
            raise ValidationError(
                f"Holding {holding.account_address} amount exceeds u64: {holding.raw_amount}"
            )
        if holding.decimals > 255:
            raise ValidationError(
                f"Holding {holding.account_address} decimals exceed u8: {holding.decimals}"
            )

    actions = resolve_actions(holdings, plan)
    steps = []
    for holding in holdings:
        account = _require_address(holding.account_address, "holding account")
        mint = _require_address(holding.asset_id, "asset")
        token_program = _require_address(holding.token_program, "token program")
        action = actions[holding.account_address]

        receiving_account = None
        if action.do_transfer and holding.raw_amount > 0:
            receiving_account = derive_receiving_account(asset_recipient, mint, token_program)

        steps.append(
            _HoldingStep(
                holding=holding,
                action=action,
                account=account,
                mint=mint,
                token_program=token_program,
                receiving_account=receiving_account,
            )
        )

    # A holding that other transfers fund must outlive the batch
    targets = _transfer_targets(steps)
    for index, step in enumerate(steps):
        if step.account in targets and step.action.do_close:
            message = (
                f"Holding {step.holding.account_address} receives transferred assets; "
                f"close skipped"
            )
            logger.warning(message)
            action = replace(step.action, do_close=False).with_warning(message)
            steps[index] = replace(step, action=action)
    return steps


def _transfer_targets(steps: Sequence[_HoldingStep]) -> Set[Pubkey]:
    """Receiving accounts that transfers from other holdings will fund."""
    return {
        step.receiving_account
        for step in steps
        if step.receiving_account is not None and step.receiving_account != step.account
    }


def _receiving_accounts_to_create(
    steps: Sequence[_HoldingStep], existing: Collection[str]
) -> List[Pubkey]:
    """Receiving accounts the batch must create, in first-use order."""
    pending: List[Pubkey] = []
    for step in steps:
        receiving = step.receiving_account
        if receiving is None or receiving == step.account:
            continue
        if str(receiving) in existing or receiving in pending:
            continue
        pending.append(receiving)
    return pending


def receiving_account_candidates(
    holdings: Sequence[Holding], plan: ActionPlan, asset_recipient: str
) -> List[str]:
    """Receiving accounts a batch for these inputs may need, to check for existence."""
    asset_pk = _require_address(asset_recipient, "asset recipient")
    candidates: List[str] = []
    steps = _prepare_steps(holdings, plan, asset_pk)
    held = {step.account for step in steps}
    for step in steps:
        receiving = step.receiving_account
        if receiving is None or receiving in held:
            continue
        if str(receiving) not in candidates:
            candidates.append(str(receiving))
    return candidates


def build_batch(
    holdings: Sequence[Holding],
    plan: ActionPlan,
    value_recipient: str,
    asset_recipient: str,
    fee_payer: str,
    native_balance: int,
    existing_receiving_accounts: Collection[str] = (),
    fee_buffer: int = DEFAULT_FEE_BUFFER_LAMPORTS,
    receiving_account_rent: int = 0,
) -> Batch:
    """
    Build the sweep batch.

    Args:
        holdings: Fresh holdings snapshot, in display order
        plan: User choices
        value_recipient: Receives the native balance and reclaimed deposits
        asset_recipient: Owner of the accounts that receive transferred tokens
        fee_payer: Connected wallet; signs and pays for the batch
        native_balance: Current native balance of the fee payer, in lamports
        existing_receiving_accounts: Receiving account addresses known to exist
        fee_buffer: Lamports kept back for the transaction fee
        receiving_account_rent: Lamports kept back per receiving account created

    Returns:
        Batch with operations in execution order

    Raises:
        ValidationError: If an address or amount is malformed or a holding is duplicated
        EmptyBatch: If nothing would be done
    """
    value_pk = _require_address(value_recipient, "value recipient")
    asset_pk = _require_address(asset_recipient, "asset recipient")
    payer_pk = _require_address(fee_payer, "fee payer")

    if native_balance < 0:
        raise ValidationError(f"Native balance cannot be negative: {native_balance}")
    if fee_buffer < 0 or receiving_account_rent < 0:
        raise ValidationError("Fee buffer and receiving account rent cannot be negative")

    steps = _prepare_steps(holdings, plan, asset_pk)
    existing = set(existing_receiving_accounts)
    targets = _transfer_targets(steps)
    existing.update(str(step.account) for step in steps if step.account in targets)
    to_create = _receiving_accounts_to_create(steps, existing)

    operations: List[Operation] = []
    warnings: List[str] = []

    reserve = fee_buffer + receiving_account_rent * len(to_create)
    send_amount = native_send_amount(native_balance, reserve)
    if plan.sweep_native and send_amount > 0 and value_pk != payer_pk:
        operations.append(
            Operation(
                kind=OperationKind.NATIVE_TRANSFER,
                instruction=build_native_transfer_ix(payer_pk, value_pk, send_amount),
                account=value_recipient,
                amount=send_amount,
            )
        )

    native_sent = operations[0].amount if operations else 0
    created: Set[Pubkey] = set()
    for step in steps:
        holding = step.holding
        action = step.action
        warnings.extend(action.warnings)

        if holding.raw_amount == 0:
            if action.do_close:
                operations.append(_close_operation(step, value_pk, payer_pk))
            continue

        emptied = False
        if action.do_destroy:
            operations.append(
                Operation(
                    kind=OperationKind.DESTROY,
                    instruction=build_burn_checked_ix(
                        step.token_program,
                        step.account,
                        step.mint,
                        payer_pk,
                        holding.raw_amount,
                        holding.decimals,
                    ),
                    account=holding.account_address,
                    asset_id=holding.asset_id,
                    amount=holding.raw_amount,
                )
            )
            emptied = True
        elif action.do_transfer:
            receiving = step.receiving_account
            if receiving == step.account:
                message = (
                    f"Holding {holding.account_address} already is the asset recipient's "
                    f"receiving account; transfer skipped"
                )
                logger.warning(message)
                warnings.append(message)
            else:
                if str(receiving) not in existing and receiving not in created:
                    operations.append(
                        Operation(
                            kind=OperationKind.CREATE_RECEIVING_ACCOUNT,
                            instruction=build_create_receiving_account_ix(
                                payer_pk, receiving, asset_pk, step.mint, step.token_program
                            ),
                            account=str(receiving),
                            asset_id=holding.asset_id,
                        )
                    )
                    created.add(receiving)
                operations.append(
                    Operation(
                        kind=OperationKind.TRANSFER,
                        instruction=build_transfer_checked_ix(
                            step.token_program,
                            step.account,
                            step.mint,
                            receiving,
                            payer_pk,
                            holding.raw_amount,
                            holding.decimals,
                        ),
                        account=holding.account_address,
                        asset_id=holding.asset_id,
                        amount=holding.raw_amount,
                    )
                )
                emptied = True

        if action.do_close:
            if emptied:
                operations.append(_close_operation(step, value_pk, payer_pk))
            elif plan.choice_for(holding).wants_close:
                message = (
                    f"Holding {holding.account_address} still holds {holding.display_amount} "
                    f"of {holding.asset_id}; close skipped"
                )
                logger.warning(message)
                warnings.append(message)

    if not operations:
        raise EmptyBatch("Nothing to do: no holding has an action and no native balance to send")

    logger.info(
        f"Built batch with {len(operations)} operations "
        f"({len(created)} receiving accounts created, native send {format_lamports(native_sent)} SOL)"
    )
    return Batch(fee_payer=fee_payer, operations=tuple(operations), warnings=tuple(warnings))


def _close_operation(step: _HoldingStep, destination: Pubkey, authority: Pubkey) -> Operation:
    return Operation(
        kind=OperationKind.CLOSE,
        instruction=build_close_account_ix(step.token_program, step.account, destination, authority),
        account=step.holding.account_address,
        asset_id=step.holding.asset_id,
    )
