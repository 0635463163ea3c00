"""
Ledger wiring and FastAPI dependencies
"""

from typing import Optional

from ..config import BankConfig, get_config
from ..storage import StorageInterface, create_storage
from ..ledger import TeamLedger
from ..logging_config import get_logger

logger = get_logger("monopoly_bank.api")


class BankSystem:
    """Storage and ledger initialized from configuration"""

    def __init__(self, config: Optional[BankConfig] = None,
                 storage: Optional[StorageInterface] = None,
                 provision_teams: bool = True):
        self.config = config or get_config()
        self.storage = storage or create_storage(
            self.config.database_url, lock_timeout=self.config.operation_timeout_seconds
        )
        self.ledger = TeamLedger(self.storage, self.config)

        if provision_teams:
            self.ledger.provision_default_teams()

        logger.info(f"Bank system ready ({type(self.storage).__name__})")

    def close(self) -> None:
        self.storage.close()


# Global bank system instance, created on first request
_bank_system: Optional[BankSystem] = None


def get_bank_system() -> BankSystem:
    global _bank_system
    if _bank_system is None:
        _bank_system = BankSystem()
    return _bank_system
