"""
Batch models for the sweep client.

An ordered list of ledger operations that is signed and submitted as a single
transaction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction


class OperationKind(Enum):
    """Operation kind enumeration."""
    NATIVE_TRANSFER = "native_transfer"
    CREATE_RECEIVING_ACCOUNT = "create_receiving_account"
    DESTROY = "destroy"
    TRANSFER = "transfer"
    CLOSE = "close"


@dataclass(frozen=True)
class Operation:
    """
    One instruction of a batch plus the bookkeeping needed to reason about it.

    Attributes:
        kind: What the instruction does
        instruction: The ledger instruction
        account: Holding account it acts on (the receiving account for creates,
            the recipient for native transfers)
        asset_id: Mint involved, None for native transfers
        amount: Raw amount moved or burned, None for creates and closes
    """
    kind: OperationKind
    instruction: Instruction
    account: str
    asset_id: Optional[str] = None
    amount: Optional[int] = None

    def references(self, address: str) -> bool:
        """Whether the instruction touches the given address."""
        target = Pubkey.from_string(address)
        return any(meta.pubkey == target for meta in self.instruction.accounts)


@dataclass(frozen=True)
class Batch:
    """Ordered operations that form one atomic transaction."""
    fee_payer: str
    operations: Tuple[Operation, ...]
    warnings: Tuple[str, ...] = ()

    @property
    def instructions(self) -> List[Instruction]:
        return [operation.instruction for operation in self.operations]

    def kinds(self) -> List[OperationKind]:
        return [operation.kind for operation in self.operations]

    def __len__(self) -> int:
        return len(self.operations)

    def to_message(self, blockhash: Hash) -> Message:
        """Compile the batch into a message bound to a blockhash."""
        return Message.new_with_blockhash(
            self.instructions, Pubkey.from_string(self.fee_payer), blockhash
        )

    def to_unsigned_transaction(self, blockhash: Hash) -> Transaction:
        return Transaction.new_unsigned(self.to_message(blockhash))
