"""
Transaction Log Module

Every mutating ledger operation appends a LedgerTransaction in the same
storage transaction as the mutation itself, so the log never shows a change
that was rolled back. Entries carry the balances after the change and an
optional idempotency key that lets callers safely retry.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord


class TransactionType(Enum):
    """Types of ledger transactions"""
    ADD_CASH = "add_cash"
    REMOVE_CASH = "remove_cash"
    TRANSFER = "transfer"
    PURCHASE = "purchase"
    RELEASE = "release"          # Property handed back by its owner
    ADJUSTMENT = "adjustment"    # Administrative overwrite via edit_team


@dataclass
class LedgerTransaction(StorageRecord):
    """
    One committed change to a team's cash or holdings
    """
    id: str
    transaction_type: TransactionType
    team_id: int
    amount: Decimal
    cash_after: Decimal
    total_cash_after: Decimal
    counterparty_team_id: Optional[int] = None
    property_name: Optional[str] = None
    idempotency_key: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    decimal_fields = ('amount', 'cash_after', 'total_cash_after')

    @property
    def record_id(self) -> str:
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['transaction_type'] = self.transaction_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerTransaction':
        data = dict(data)
        data['transaction_type'] = TransactionType(data['transaction_type'])
        return super().from_dict(data)

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "transaction_type": self.transaction_type.value,
            "team_id": self.team_id,
            "counterparty_team_id": self.counterparty_team_id,
            "property_name": self.property_name,
            "amount": self.amount,
            "cash_after": self.cash_after,
            "total_cash_after": self.total_cash_after,
            "created_at": self.created_at.isoformat(),
        }


class TransactionLog:
    """
    Append-only record of ledger transactions
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "ledger_transactions"

    def record(
        self,
        transaction_type: TransactionType,
        team_id: int,
        amount: Decimal,
        cash_after: Decimal,
        total_cash_after: Decimal,
        counterparty_team_id: Optional[int] = None,
        property_name: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> LedgerTransaction:
        now = datetime.now(timezone.utc)
        entry = LedgerTransaction(
            created_at=now,
            updated_at=now,
            id=str(uuid.uuid4()),
            transaction_type=transaction_type,
            team_id=team_id,
            amount=amount,
            cash_after=cash_after,
            total_cash_after=total_cash_after,
            counterparty_team_id=counterparty_team_id,
            property_name=property_name,
            idempotency_key=idempotency_key,
            metadata=metadata or {}
        )
        self.storage.save(self.table_name, entry.id, entry.to_dict())
        return entry

    def find_by_idempotency_key(self, idempotency_key: str) -> Optional[LedgerTransaction]:
        found = self.storage.find(self.table_name, {"idempotency_key": idempotency_key})
        if found:
            return LedgerTransaction.from_dict(found[0])
        return None

    def for_team(self, team_id: int, limit: Optional[int] = None) -> List[LedgerTransaction]:
        """Entries recorded against the team, most recent first"""
        entries = [
            LedgerTransaction.from_dict(data)
            for data in self.storage.load_all(self.table_name)
            if data.get('team_id') == team_id
        ]
        # Stable ascending sort then reverse, so same-timestamp entries stay
        # in reverse insertion order
        entries.sort(key=lambda e: e.created_at)
        entries.reverse()
        if limit:
            entries = entries[:limit]
        return entries

    def renumber_team(self, old_team_id: int, new_team_id: int) -> None:
        for data in self.storage.load_all(self.table_name):
            changed = False
            if data.get('team_id') == old_team_id:
                data['team_id'] = new_team_id
                changed = True
            if data.get('counterparty_team_id') == old_team_id:
                data['counterparty_team_id'] = new_team_id
                changed = True
            if changed:
                self.storage.save(self.table_name, data['id'], data)

    def count(self) -> int:
        return self.storage.count(self.table_name)

    def clear(self) -> None:
        self.storage.clear_table(self.table_name)
