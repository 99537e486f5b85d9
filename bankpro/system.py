"""
Banking core facade: every component wired to one StateStore.
"""

from typing import Optional

from .cards import CardRegistry
from .config import BankproConfig, get_config
from .currency import Amount, format_currency
from .identity import SessionManager
from .ledger import Ledger
from .logging_config import setup_logging
from .state import StateStore
from .statements import StatementQuery
from .storage import SnapshotStorage, create_storage


class BankingCore:
    """Banking core with all components initialized"""

    def __init__(
        self,
        config: Optional[BankproConfig] = None,
        storage: Optional[SnapshotStorage] = None,
        configure_logging: bool = False
    ):
        self.config = config or get_config()
        if configure_logging:
            setup_logging(self.config.log_level, self.config.log_format)

        self.storage = storage or create_storage(self.config)
        self.store = StateStore(self.storage, key=self.config.snapshot_key)

        self.sessions = SessionManager(self.store)
        self.ledger = Ledger(self.store, self.config)
        self.cards = CardRegistry(self.store, self.config)
        self.statements = StatementQuery(self.store)

    def format_amount(self, amount: Amount) -> str:
        """Display string in the configured currency symbol"""
        return format_currency(amount, self.config.currency_symbol)

    def close(self) -> None:
        self.storage.close()
