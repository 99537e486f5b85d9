"""
State Store Module

Owns the single persisted snapshot: users, accounts, cards, transactions,
id counters and the session. Every component receives a StateStore and goes
through load/save (or the mutate() block) instead of sharing a global.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional
import threading

from .errors import StaleSnapshotError
from .logging_config import get_logger, log_action
from .models import Account, Card, IdCounters, Session, Transaction, User
from .storage import SnapshotStorage


DEFAULT_SNAPSHOT_KEY = "bankpro_v1"


@dataclass
class BankState:
    """
    In-memory snapshot. Records are keyed by their unique key (user id,
    account number, card number) and replaced, never edited in place.
    """
    users: Dict[int, User] = field(default_factory=dict)
    accounts: Dict[str, Account] = field(default_factory=dict)
    cards: Dict[str, Card] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)
    next_id: IdCounters = field(default_factory=IdCounters)
    session: Session = field(default_factory=Session)
    # Storage version this snapshot was loaded at; None if never persisted
    version: Optional[int] = field(default=None, compare=False)

    def allocate_id(self, kind: str) -> int:
        """Hand out the next id for kind ('user', 'account', 'card', 'tx')"""
        new_id = getattr(self.next_id, kind)
        self.next_id = self.next_id.advance(kind)
        return new_id

    def put_account(self, account: Account) -> None:
        self.accounts[account.account_number] = account

    def put_card(self, card: Card) -> None:
        self.cards[card.card_number] = card

    def append_transaction(self, transaction: Transaction) -> None:
        if self.transactions and transaction.id <= self.transactions[-1].id:
            raise ValueError(
                f"Transaction id {transaction.id} does not follow {self.transactions[-1].id}"
            )
        self.transactions.append(transaction)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted snapshot layout"""
        return {
            "users": [u.to_dict() for u in sorted(self.users.values(), key=lambda u: u.id)],
            "accounts": [a.to_dict() for a in sorted(self.accounts.values(), key=lambda a: a.id)],
            "cards": [c.to_dict() for c in sorted(self.cards.values(), key=lambda c: c.id)],
            "transactions": [t.to_dict() for t in self.transactions],
            "nextId": self.next_id.to_dict(),
            "session": self.session.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BankState':
        users = [User.from_dict(u) for u in data.get("users", [])]
        accounts = [Account.from_dict(a) for a in data.get("accounts", [])]
        cards = [Card.from_dict(c) for c in data.get("cards", [])]
        return cls(
            users={u.id: u for u in users},
            accounts={a.account_number: a for a in accounts},
            cards={c.card_number: c for c in cards},
            transactions=[Transaction.from_dict(t) for t in data.get("transactions", [])],
            next_id=IdCounters.from_dict(data.get("nextId", {})),
            session=Session.from_dict(data.get("session")),
        )


class StateStore:
    """
    Load/save boundary around one snapshot key.

    No caching: every load() reads the backend, so a store handle never holds
    state that could drift from what is persisted.
    """

    def __init__(
        self,
        storage: SnapshotStorage,
        key: str = DEFAULT_SNAPSHOT_KEY,
        seed_factory: Optional[Callable[[], BankState]] = None
    ):
        if seed_factory is None:
            from .seed import default_seed
            seed_factory = default_seed
        self.storage = storage
        self.key = key
        self._seed_factory = seed_factory
        self._lock = threading.RLock()
        self.logger = get_logger("bankpro.state")

    def load(self) -> BankState:
        """Return the persisted snapshot, seeding the demo dataset on first use"""
        with self._lock:
            stored = self.storage.read(self.key)
            if stored is None:
                state = self._seed_factory()
                try:
                    state.version = self.storage.write(self.key, state.to_dict(), expected_version=0)
                except StaleSnapshotError:
                    # Another writer seeded first; use theirs
                    stored = self.storage.read(self.key)
                else:
                    log_action(
                        self.logger, "info", "Seeded default snapshot",
                        action="seed", resource=f"snapshot:{self.key}"
                    )
                    return state

            state = BankState.from_dict(stored.data)
            state.version = stored.version
            return state

    def save(self, state: BankState) -> None:
        """
        Persist the full snapshot, replacing the prior one.

        Raises:
            StaleSnapshotError: If the stored snapshot changed since state was loaded
        """
        with self._lock:
            state.version = self.storage.write(
                self.key, state.to_dict(), expected_version=state.version
            )

    @contextmanager
    def mutate(self) -> Iterator[BankState]:
        """
        Load, yield for changes, then save. Nothing is saved if the block raises.
        """
        with self._lock:
            state = self.load()
            yield state
            self.save(state)

    def reset(self) -> BankState:
        """Drop the stored snapshot and reseed"""
        with self._lock:
            self.storage.delete(self.key)
            return self.load()
