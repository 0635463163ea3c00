"""
Team Account Store

One record per team holding its cash on hand and its derived net worth
(``total_cash``). Rows are only changed through the TeamLedger operations,
which call into this store inside a storage transaction.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from .storage import StorageInterface, StorageRecord
from .errors import ValidationError, NotFoundError, ConflictError
from .money import ZERO


@dataclass
class Team(StorageRecord):
    """
    A player group with a cash balance and owned properties
    """
    team_id: int
    team_name: str
    cash: Decimal = ZERO
    total_cash: Decimal = ZERO

    decimal_fields = ('cash', 'total_cash')

    @property
    def record_id(self) -> str:
        return str(self.team_id)

    @property
    def is_in_debt(self) -> bool:
        return self.cash < ZERO

    def to_row(self) -> Dict[str, Any]:
        """Row shape returned to callers"""
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "cash": self.cash,
            "total_cash": self.total_cash,
        }


def default_team_name(team_id: int) -> str:
    return f"Team {team_id}"


class TeamStore:
    """
    Persistence for Team records, keyed by team id
    """

    def __init__(self, storage: StorageInterface, max_teams: int = 8):
        self.storage = storage
        self.max_teams = max_teams
        self.table_name = "teams"

    def validate_team_id(self, team_id: Any, field_name: str = "team_id") -> int:
        """Check a team id is an integer within 1..max_teams"""
        if isinstance(team_id, bool) or not isinstance(team_id, int):
            raise ValidationError(f"{field_name} must be an integer, got {team_id!r}")
        if not 1 <= team_id <= self.max_teams:
            raise ValidationError(f"{field_name} must be between 1 and {self.max_teams}")
        return team_id

    def create(self, team_id: int, team_name: Optional[str] = None,
               cash: Decimal = ZERO) -> Team:
        self.validate_team_id(team_id)
        if self.storage.exists(self.table_name, str(team_id)):
            raise ConflictError(f"Team {team_id} already exists")

        now = datetime.now(timezone.utc)
        team = Team(
            created_at=now,
            updated_at=now,
            team_id=team_id,
            team_name=team_name or default_team_name(team_id),
            cash=cash,
            total_cash=cash
        )
        self.save(team)
        return team

    def get(self, team_id: int) -> Optional[Team]:
        data = self.storage.load(self.table_name, str(team_id))
        if data:
            return Team.from_dict(data)
        return None

    def require(self, team_id: int) -> Team:
        """Load a team or raise NotFoundError"""
        team = self.get(team_id)
        if not team:
            raise NotFoundError(f"Team {team_id} not found")
        return team

    def require_for_update(self, team_id: int) -> Team:
        """Load and lock a team row for the current transaction"""
        data = self.storage.load_for_update(self.table_name, str(team_id))
        if not data:
            raise NotFoundError(f"Team {team_id} not found")
        return Team.from_dict(data)

    def exists(self, team_id: int) -> bool:
        return self.storage.exists(self.table_name, str(team_id))

    def list_all(self) -> List[Team]:
        teams = [Team.from_dict(data) for data in self.storage.load_all(self.table_name)]
        teams.sort(key=lambda t: t.team_id)
        return teams

    def save(self, team: Team) -> None:
        team.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.table_name, team.record_id, team.to_dict())

    def delete(self, team_id: int) -> bool:
        return self.storage.delete(self.table_name, str(team_id))

    def clear(self) -> None:
        self.storage.clear_table(self.table_name)
