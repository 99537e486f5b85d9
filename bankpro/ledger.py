"""
Ledger Module

The transfer engine. A transfer is validated completely against a freshly
loaded snapshot, then applied in one step: debit the source, credit the
destination, append a SUCCESS transaction, persist. A rejected transfer
changes nothing and records nothing.

Transfers are not idempotent. Retrying a transfer that already committed
moves the money twice, so callers must confirm the outcome of an attempt
before resubmitting it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from .config import BankproConfig, get_config
from .currency import Amount, parse_positive_amount
from .errors import (
    AccountNotFound,
    BankError,
    DestinationNotFound,
    InsufficientFunds,
    InvalidInput,
    SourceNotFound,
    SourceNotOwned,
)
from .logging_config import get_logger, log_action
from .models import Account, Transaction, TransactionStatus, TransferType, User
from .state import StateStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Ledger:
    """
    Applies transfers between accounts and answers account look-ups
    """

    def __init__(
        self,
        store: StateStore,
        config: Optional[BankproConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.config = config or get_config()
        self.clock = clock
        self.logger = get_logger("bankpro.ledger")

    def transfer(
        self,
        actor: User,
        from_account_number: str,
        to_account_number: str,
        amount: Amount,
        description: Optional[str] = None,
        transfer_type: TransferType = TransferType.SAME_BANK
    ) -> Transaction:
        """
        Move amount from one account to another.

        Args:
            actor: Signed-in user issuing the transfer
            from_account_number: Account to debit
            to_account_number: Account to credit
            amount: Strictly positive amount
            description: Free text; blank falls back to the transfer type's default
            transfer_type: Caller's same-bank / different-bank classification

        Returns:
            The committed Transaction

        Raises:
            InvalidInput: Missing account number or non-positive amount
            SourceNotFound: Source account does not exist
            DestinationNotFound: Destination account does not exist
            SourceNotOwned: Ownership checks enabled and actor does not own the source
            InsufficientFunds: Source balance is below amount
        """
        try:
            transaction = self._apply_transfer(
                actor, from_account_number, to_account_number,
                amount, description, transfer_type
            )
        except BankError as e:
            log_action(
                self.logger, "warning", f"Transfer rejected: {e}",
                user_id=actor.id, action="transfer",
                extra={
                    "error": e.code,
                    "from_account": from_account_number,
                    "to_account": to_account_number,
                    "amount": str(amount),
                }
            )
            raise

        log_action(
            self.logger, "info", "Transfer committed",
            user_id=actor.id, action="transfer", resource=f"transaction:{transaction.id}",
            extra={
                "from_account": transaction.from_account,
                "to_account": transaction.to_account,
                "amount": str(transaction.amount),
            }
        )
        return transaction

    def _apply_transfer(
        self,
        actor: User,
        from_account_number: str,
        to_account_number: str,
        amount: Amount,
        description: Optional[str],
        transfer_type: TransferType
    ) -> Transaction:
        for number in (from_account_number, to_account_number):
            if number is not None and not isinstance(number, str):
                raise InvalidInput(f"Account number must be text, got {number!r}")
        source_number = (from_account_number or "").strip()
        destination_number = (to_account_number or "").strip()
        if not source_number or not destination_number:
            raise InvalidInput("Source and destination account numbers are required")
        value = parse_positive_amount(amount)

        with self.store.mutate() as state:
            source = state.accounts.get(source_number)
            if source is None:
                raise SourceNotFound(f"From account {source_number} not found")

            destination = state.accounts.get(destination_number)
            if destination is None:
                raise DestinationNotFound(f"Receiver account {destination_number} not found")

            if self.config.enforce_source_ownership and source.owner_id != actor.id:
                raise SourceNotOwned(f"Account {source_number} does not belong to {actor.username}")

            if source.balance < value:
                raise InsufficientFunds(
                    f"Insufficient balance in {source_number}: {source.balance} < {value}"
                )

            # Debit first: for a self-transfer the credit must see the debited record
            state.put_account(source.debited(value))
            state.put_account(state.accounts[destination_number].credited(value))

            transaction = Transaction(
                id=state.allocate_id("tx"),
                from_account=source_number,
                to_account=destination_number,
                amount=value,
                timestamp=self.clock(),
                description=(description or "").strip() or transfer_type.default_description,
                status=TransactionStatus.SUCCESS,
            )
            state.append_transaction(transaction)

        return transaction

    def get_account(self, account_number: str) -> Account:
        """
        Get account by account number.

        Raises:
            AccountNotFound: If no account has that number
        """
        account = self.store.load().accounts.get(account_number)
        if account is None:
            raise AccountNotFound(f"Account {account_number} not found")
        return account

    def accounts_for(self, user: User) -> List[Account]:
        """Accounts owned by user, in creation order"""
        accounts = self.store.load().accounts.values()
        return sorted((a for a in accounts if a.owner_id == user.id), key=lambda a: a.id)

    def total_balance(self, user: User) -> Decimal:
        return sum((a.balance for a in self.accounts_for(user)), Decimal("0"))
