"""
Domain Records Module

Users, accounts, cards and transactions as immutable records. A change is a
new record that replaces the old one under its key (``dataclasses.replace``).
Each record converts to and from the camelCase snapshot layout.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .currency import amount_to_string, to_decimal


class CardType(Enum):
    """Card networks a customer can apply for"""
    VISA = "VISA"
    MASTERCARD = "MasterCard"


class TransactionStatus(Enum):
    """Outcome recorded on a transaction"""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"  # Never recorded by the ledger; rejected transfers leave no trace


class TransferType(Enum):
    """Caller's classification of a transfer, used only for the default description"""
    SAME_BANK = "SAME"
    DIFFERENT_BANK = "OTHER"

    @property
    def default_description(self) -> str:
        if self is TransferType.SAME_BANK:
            return "Same-bank transfer"
        return "Different-bank transfer"


def _parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601, accepting the trailing 'Z' browsers emit"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class User:
    id: int
    username: str
    password: str
    full_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "password": self.password,
            "fullName": self.full_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=int(data["id"]),
            username=data["username"],
            password=data["password"],
            full_name=data.get("fullName", ""),
        )


@dataclass(frozen=True)
class Account:
    """Customer account; balance changes only through a ledger transfer"""
    id: int
    account_number: str
    bank_name: str
    balance: Decimal
    owner_id: int

    def debited(self, amount: Decimal) -> 'Account':
        return replace(self, balance=self.balance - amount)

    def credited(self, amount: Decimal) -> 'Account':
        return replace(self, balance=self.balance + amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "accountNumber": self.account_number,
            "bankName": self.bank_name,
            "balance": amount_to_string(self.balance),
            "ownerId": self.owner_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=int(data["id"]),
            account_number=data["accountNumber"],
            bank_name=data.get("bankName", ""),
            balance=to_decimal(data["balance"]),
            owner_id=int(data["ownerId"]),
        )


@dataclass(frozen=True)
class Card:
    id: int
    card_number: str
    card_type: CardType
    owner_id: int
    blocked: bool = False

    @property
    def is_active(self) -> bool:
        return not self.blocked

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cardNumber": self.card_number,
            "cardType": self.card_type.value,
            "blocked": self.blocked,
            "ownerId": self.owner_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Card':
        return cls(
            id=int(data["id"]),
            card_number=data["cardNumber"],
            card_type=CardType(data["cardType"]),
            owner_id=int(data["ownerId"]),
            blocked=bool(data.get("blocked", False)),
        )


@dataclass(frozen=True)
class Transaction:
    """
    Committed funds movement between two accounts, referenced by account number.
    Append-only: never mutated or deleted once recorded.
    """
    id: int
    from_account: str
    to_account: str
    amount: Decimal
    timestamp: datetime
    description: str
    status: TransactionStatus = TransactionStatus.SUCCESS

    @property
    def date(self):
        """UTC calendar date of the commit"""
        return self.timestamp.astimezone(timezone.utc).date()

    def involves(self, account_number: str) -> bool:
        return account_number in (self.from_account, self.to_account)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromAccount": self.from_account,
            "toAccount": self.to_account,
            "amount": amount_to_string(self.amount),
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=int(data["id"]),
            from_account=data["fromAccount"],
            to_account=data["toAccount"],
            amount=to_decimal(data["amount"]),
            timestamp=_parse_timestamp(data["timestamp"]),
            description=data.get("description") or "",
            status=TransactionStatus(data.get("status", "SUCCESS")),
        )


@dataclass(frozen=True)
class Session:
    """Who is signed in; replaced wholesale on login and logout"""
    user_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.user_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Session':
        user_id = (data or {}).get("userId")
        return cls(user_id=int(user_id) if user_id is not None else None)


@dataclass(frozen=True)
class IdCounters:
    """Next id to hand out per entity kind. Counters only move forward."""
    user: int = 1
    account: int = 1
    card: int = 1
    tx: int = 1

    def advance(self, kind: str) -> 'IdCounters':
        return replace(self, **{kind: getattr(self, kind) + 1})

    def to_dict(self) -> Dict[str, int]:
        return {"user": self.user, "account": self.account, "card": self.card, "tx": self.tx}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IdCounters':
        return cls(
            user=int(data.get("user", 1)),
            account=int(data.get("account", 1)),
            card=int(data.get("card", 1)),
            tx=int(data.get("tx", 1)),
        )
