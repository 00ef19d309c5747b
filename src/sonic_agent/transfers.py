from typing import List

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)


def native_transfer(sender: Pubkey, recipient: Pubkey, lamports: int) -> List[Instruction]:
    return [transfer(TransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports))]


def token_transfer(sender: Pubkey, recipient: Pubkey, mint: Pubkey, amount: int, decimals: int) -> List[Instruction]:
    """Move ``amount`` base units of ``mint`` between associated token accounts.

    The recipient's account is created first if it does not exist; the sender
    pays the rent.
    """
    source = get_associated_token_address(sender, mint)
    destination = get_associated_token_address(recipient, mint)
    return [
        create_idempotent_associated_token_account(sender, recipient, mint),
        transfer_checked(
            TransferCheckedParams(
                program_id=TOKEN_PROGRAM_ID,
                source=source,
                mint=mint,
                dest=destination,
                owner=sender,
                amount=amount,
                decimals=decimals,
            )
        ),
    ]
