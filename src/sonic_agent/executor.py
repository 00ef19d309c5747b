import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import MalformedTransaction, SigningError, SonicAgentError, TransactionBuildFailed
from .ledger import SolanaLedger
from .models import BlockReference, Deadline, UnsignedTransactionBundle

LOG = logging.getLogger(__name__)

_SIGNER_LOCKS: Dict[str, threading.Lock] = {}
_REGISTRY_LOCK = threading.Lock()


def signer_lock(address: str) -> threading.Lock:
    """Process-wide lock serialising submissions for one signer."""
    with _REGISTRY_LOCK:
        lock = _SIGNER_LOCKS.get(address)
        if lock is None:
            lock = _SIGNER_LOCKS[address] = threading.Lock()
        return lock


class TransactionExecutor:
    def __init__(self, ledger: SolanaLedger, confirm_timeout: float = 60.0) -> None:
        self.ledger = ledger
        self.confirm_timeout = confirm_timeout

    def decode(self, payload: bytes) -> VersionedTransaction:
        try:
            return VersionedTransaction.from_bytes(payload)
        except Exception as exc:
            raise MalformedTransaction(f"could not decode transaction: {exc}", cause=exc) from exc

    def sign(self, transaction: VersionedTransaction, keypair: Keypair) -> VersionedTransaction:
        message = transaction.message
        required = message.header.num_required_signatures
        signers = list(message.account_keys)[:required]
        pubkey = keypair.pubkey()
        if pubkey not in signers:
            raise SigningError(f"{pubkey} is not a required signer of this transaction")

        signatures = list(transaction.signatures)
        if len(signatures) != required:
            signatures = (signatures + [Signature.default()] * required)[:required]
        signatures[signers.index(pubkey)] = keypair.sign_message(to_bytes_versioned(message))
        return VersionedTransaction.populate(message, signatures)

    def execute_bundle(
        self,
        bundle: UnsignedTransactionBundle,
        keypair: Keypair,
        deadline: Optional[Deadline] = None,
    ) -> List[str]:
        if not bundle.payloads:
            raise MalformedTransaction("transaction bundle is empty")
        transactions = [self.decode(payload) for payload in bundle.payloads]

        landed: List[str] = []
        for index, transaction in enumerate(transactions):
            try:
                landed.append(self._execute_one(transaction, keypair, deadline))
            except SonicAgentError as exc:
                exc.landed_signatures = tuple(landed)
                LOG.error(f"Bundle entry {index + 1}/{len(transactions)} failed: {exc}")
                raise
        return landed

    def execute_instructions(
        self,
        instructions: Sequence[Instruction],
        keypair: Keypair,
        deadline: Optional[Deadline] = None,
    ) -> str:
        """Compile, sign and land a locally built transaction paid by ``keypair``."""
        payer = keypair.pubkey()

        def compile_and_sign(reference: BlockReference) -> VersionedTransaction:
            try:
                message = MessageV0.try_compile(payer, list(instructions), [], Hash.from_string(reference.blockhash))
                return VersionedTransaction(message, [keypair])
            except Exception as exc:
                raise TransactionBuildFailed(f"could not compile transaction: {exc}", cause=exc) from exc

        return self._land(compile_and_sign, keypair, deadline)

    def _execute_one(self, transaction: VersionedTransaction, keypair: Keypair, deadline: Optional[Deadline]) -> str:
        signed = self.sign(transaction, keypair)
        return self._land(lambda reference: signed, keypair, deadline)

    def _land(
        self,
        prepare: Callable[[BlockReference], VersionedTransaction],
        keypair: Keypair,
        deadline: Optional[Deadline],
    ) -> str:
        address = str(keypair.pubkey())

        with signer_lock(address):
            if deadline is not None:
                deadline.check("submit")
            reference = self.ledger.latest_block_reference()
            signed = prepare(reference)
            if deadline is not None:
                deadline.check("submit")
            submitted = self.ledger.submit(bytes(signed), str(signed.signatures[0]))
        LOG.info(f"Submitted {submitted} from {address}")

        # once submitted, an exhausted deadline still polls once and reports the signature
        wait = self.confirm_timeout
        if deadline is not None:
            wait = min(wait, max(deadline.remaining(), 0.0))
        self.ledger.confirm(submitted, reference, wait)
        LOG.info(f"Confirmed {submitted}")
        return submitted
