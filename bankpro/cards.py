"""
Card Registry Module

Issues cards to the signed-in user and blocks them. Card numbers are a fixed
leading digit plus 15 random digits; they are unique within the store but
carry no Luhn checksum or issuer range.
"""

from dataclasses import replace
from typing import Callable, List, Optional, Union
import secrets

from .config import BankproConfig, get_config
from .errors import CardNotFound, InvalidInput
from .logging_config import get_logger, log_action
from .models import Card, CardType, User
from .state import StateStore


CARD_NUMBER_BODY_DIGITS = 15


def random_digits(count: int) -> str:
    """count random decimal digits, leading zeros kept"""
    return f"{secrets.randbelow(10 ** count):0{count}d}"


class CardRegistry:
    """
    Manages card issuance and blocking
    """

    def __init__(
        self,
        store: StateStore,
        config: Optional[BankproConfig] = None,
        number_source: Optional[Callable[[int], str]] = None
    ):
        self.store = store
        self.config = config or get_config()
        self._number_source = number_source or random_digits
        self.logger = get_logger("bankpro.cards")

    def _resolve_card_type(self, card_type: Union[CardType, str, None]) -> CardType:
        if isinstance(card_type, CardType):
            return card_type
        if card_type is not None and not isinstance(card_type, str):
            raise InvalidInput(f"Unsupported card type: {card_type!r}")
        name =(card_type or "").strip() or self.config.default_card_type
        try:
            return CardType(name)
        except ValueError:
            raise InvalidInput(f"Unsupported card type: {name}") from None

    def _generate_card_number(self, taken) -> str:
        while True:
            number = self.config.card_number_prefix + self._number_source(CARD_NUMBER_BODY_DIGITS)
            if number not in taken:
                return number

    def issue(self, actor: User, card_type: Union[CardType, str, None] = None) -> Card:
        """
        Issue a new, unblocked card owned by actor.

        Args:
            actor: Signed-in user applying for the card
            card_type: CardType or its value; defaults to the configured type

        Returns:
            The stored Card

        Raises:
            InvalidInput: If card_type is not a known card type
        """
        resolved = self._resolve_card_type(card_type)

        with self.store.mutate() as state:
            card = Card(
                id=state.allocate_id("card"),
                card_number=self._generate_card_number(state.cards),
                card_type=resolved,
                owner_id=actor.id,
            )
            state.put_card(card)

        log_action(
            self.logger, "info", f"Card issued: {card.card_type.value}",
            user_id=actor.id, action="issue_card", resource=f"card:{card.id}"
        )
        return card

    def block(self, card_number: str) -> Card:
        """
        Block a card. Blocking an already blocked card is a no-op.

        Raises:
            CardNotFound: If no card has that number
        """
        try:
            with self.store.mutate() as state:
                card = state.cards.get(card_number)
                if card is None:
                    raise CardNotFound(f"Card {card_number} not found")
                if not card.blocked:
                    card = replace(card, blocked=True)
                    state.put_card(card)
        except CardNotFound:
            log_action(
                self.logger, "warning", "Block rejected: unknown card",
                action="block_card", extra={"error": CardNotFound.code}
            )
            raise

        log_action(
            self.logger, "info", "Card blocked",
            user_id=card.owner_id, action="block_card", resource=f"card:{card.id}"
        )
        return card

    def get_card(self, card_number: str) -> Card:
        card = self.store.load().cards.get(card_number)
        if card is None:
            raise CardNotFound(f"Card {card_number} not found")
        return card

    def cards_for(self, user: User) -> List[Card]:
        """Cards owned by user, in issue order"""
        cards = self.store.load().cards.values()
        return sorted((c for c in cards if c.owner_id == user.id), key=lambda c: c.id)
