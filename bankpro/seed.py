"""
Demo dataset written on first load when no snapshot exists yet.
"""

from decimal import Decimal

from .models import Account, Card, CardType, IdCounters, Session, User
from .state import BankState


def default_seed() -> BankState:
    """Two demo users, three accounts split across them, two cards"""
    users = [
        User(id=1, username="sharmila", password="password123", full_name="Sharmila R"),
        User(id=2, username="john", password="johnpwd", full_name="John Doe"),
    ]
    accounts = [
        Account(id=1, account_number="SBIN0001001", bank_name="SameBank",
                balance=Decimal("50000"), owner_id=1),
        Account(id=2, account_number="SBIN0001002", bank_name="SameBank",
                balance=Decimal("15000"), owner_id=1),
        Account(id=3, account_number="HDFC0002001", bank_name="OtherBank",
                balance=Decimal("20000"), owner_id=2),
    ]
    cards = [
        Card(id=1, card_number="4123456789012345", card_type=CardType.VISA, owner_id=1),
        Card(id=2, card_number="5123456789012346", card_type=CardType.MASTERCARD, owner_id=2),
    ]
    return BankState(
        users={u.id: u for u in users},
        accounts={a.account_number: a for a in accounts},
        cards={c.card_number: c for c in cards},
        transactions=[],
        next_id=IdCounters(user=3, account=4, card=3, tx=1),
        session=Session(),
    )
