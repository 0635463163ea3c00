"""
Property Store

Property records keyed by name, with a fixed value and an optional owning
team. The standard board catalog is bulk-loaded once and individual
properties then change hands through the ledger.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any, Tuple

from .storage import StorageInterface, StorageRecord
from .errors import NotFoundError


# Standard board: streets, railroads and utilities with their list prices
PROPERTY_CATALOG: Tuple[Tuple[str, str], ...] = (
    ("Mediterranean Avenue", "60"),
    ("Baltic Avenue", "60"),
    ("Oriental Avenue", "100"),
    ("Vermont Avenue", "100"),
    ("Connecticut Avenue", "120"),
    ("St. Charles Place", "140"),
    ("States Avenue", "140"),
    ("Virginia Avenue", "160"),
    ("St. James Place", "180"),
    ("Tennessee Avenue", "180"),
    ("New York Avenue", "200"),
    ("Kentucky Avenue", "220"),
    ("Indiana Avenue", "220"),
    ("Illinois Avenue", "240"),
    ("Atlantic Avenue", "260"),
    ("Ventnor Avenue", "260"),
    ("Marvin Gardens", "280"),
    ("Pacific Avenue", "300"),
    ("North Carolina Avenue", "300"),
    ("Pennsylvania Avenue", "320"),
    ("Park Place", "350"),
    ("Boardwalk", "400"),
    ("Reading Railroad", "200"),
    ("Pennsylvania Railroad", "200"),
    ("B&O Railroad", "200"),
    ("Short Line", "200"),
    ("Electric Company", "150"),
    ("Water Works", "150"),
)


@dataclass
class Property(StorageRecord):
    """
    A purchasable board property
    """
    property_name: str
    property_value: Decimal
    owner_team_id: Optional[int] = None

    decimal_fields = ('property_value',)

    @property
    def record_id(self) -> str:
        return self.property_name

    @property
    def is_available(self) -> bool:
        return self.owner_team_id is None

    def to_row(self) -> Dict[str, Any]:
        return {
            "property_name": self.property_name,
            "property_value": self.property_value,
            "owner_team_id": self.owner_team_id,
        }


def property_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive name ordering with a deterministic tie-break"""
    return (name.casefold(), name)


class PropertyStore:
    """
    Persistence for Property records, keyed by property name
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "properties"

    def create(self, property_name: str, property_value: Decimal) -> Property:
        now = datetime.now(timezone.utc)
        prop = Property(
            created_at=now,
            updated_at=now,
            property_name=property_name,
            property_value=property_value
        )
        self.save(prop)
        return prop

    def get(self, property_name: str) -> Optional[Property]:
        data = self.storage.load(self.table_name, property_name)
        if data:
            return Property.from_dict(data)
        return None

    def require_for_update(self, property_name: str) -> Property:
        """Load and lock a property row, or raise NotFoundError"""
        data = self.storage.load_for_update(self.table_name, property_name)
        if not data:
            raise NotFoundError(f"Property '{property_name}' not found")
        return Property.from_dict(data)

    def exists(self, property_name: str) -> bool:
        return self.storage.exists(self.table_name, property_name)

    def list_all(self) -> List[Property]:
        props = [Property.from_dict(data) for data in self.storage.load_all(self.table_name)]
        props.sort(key=lambda p: property_sort_key(p.property_name))
        return props

    def list_available(self) -> List[Property]:
        return [p for p in self.list_all() if p.is_available]

    def list_owned_by(self, team_id: int) -> List[Property]:
        props = [
            Property.from_dict(data)
            for data in self.storage.find(self.table_name, {"owner_team_id": team_id})
        ]
        props.sort(key=lambda p: property_sort_key(p.property_name))
        return props

    def owned_value(self, team_id: int) -> Decimal:
        """Sum of the values of every property the team owns"""
        return sum((p.property_value for p in self.list_owned_by(team_id)), Decimal('0.00'))

    def save(self, prop: Property) -> None:
        prop.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.table_name, prop.record_id, prop.to_dict())

    def clear(self) -> None:
        self.storage.clear_table(self.table_name)
