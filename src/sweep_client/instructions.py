"""
Instruction builders for the system, token and associated-token programs.

Thin, pure wrappers around solders primitives. Amounts are raw integers; the
checked token instructions also carry the mint's decimals.
"""

import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BURN_CHECKED_INDEX,
    CLOSE_ACCOUNT_INDEX,
    CREATE_IDEMPOTENT_INDEX,
    MAX_U64,
    SYSTEM_PROGRAM_ID,
    TRANSFER_CHECKED_INDEX,
)

_SYSTEM_PROGRAM = Pubkey.from_string(SYSTEM_PROGRAM_ID)
_ASSOCIATED_TOKEN_PROGRAM = Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID)


def _encode_amount_checked(index: int, amount: int, decimals: int) -> bytes:
    if not 0 <= amount <= MAX_U64:
        raise ValueError(f"Amount out of u64 range: {amount}")
    if not 0 <= decimals <= 255:
        raise ValueError(f"Decimals out of u8 range: {decimals}")
    return struct.pack("<BQB", index, amount, decimals)


def derive_receiving_account(owner: Pubkey, mint: Pubkey, token_program: Pubkey) -> Pubkey:
    """Associated token account of owner for mint under token_program."""
    address, _bump = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        _ASSOCIATED_TOKEN_PROGRAM,
    )
    return address


def build_native_transfer_ix(from_pubkey: Pubkey, to_pubkey: Pubkey, lamports: int) -> Instruction:
    return transfer(TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=int(lamports)))


def build_create_receiving_account_ix(
    payer: Pubkey,
    receiving_account: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey,
) -> Instruction:
    """Idempotent associated-token-account creation, funded by payer."""
    return Instruction(
        program_id=_ASSOCIATED_TOKEN_PROGRAM,
        accounts=[
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=receiving_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=_SYSTEM_PROGRAM, is_signer=False, is_writable=False),
            AccountMeta(pubkey=token_program, is_signer=False, is_writable=False),
        ],
        data=bytes([CREATE_IDEMPOTENT_INDEX]),
    )


def build_transfer_checked_ix(
    token_program: Pubkey,
    source: Pubkey,
    mint: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
    amount: int,
    decimals: int,
) -> Instruction:
    return Instruction(
        program_id=token_program,
        accounts=[
            AccountMeta(pubkey=source, is_signer=False, is_writable=True),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ],
        data=_encode_amount_checked(TRANSFER_CHECKED_INDEX, amount, decimals),
    )


def build_burn_checked_ix(
    token_program: Pubkey,
    account: Pubkey,
    mint: Pubkey,
    authority: Pubkey,
    amount: int,
    decimals: int,
) -> Instruction:
    return Instruction(
        program_id=token_program,
        accounts=[
            AccountMeta(pubkey=account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ],
        data=_encode_amount_checked(BURN_CHECKED_INDEX, amount, decimals),
    )


def build_close_account_ix(
    token_program: Pubkey,
    account: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
) -> Instruction:
    return Instruction(
        program_id=token_program,
        accounts=[
            AccountMeta(pubkey=account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ],
        data=bytes([CLOSE_ACCOUNT_INDEX]),
    )
