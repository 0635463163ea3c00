"""
Team Ledger Module

The only entry point for changing team cash or property ownership. Each
operation validates its input, applies the change inside one
``storage.atomic()`` unit, recomputes the net worth of every team it touched
and appends the change to the transaction log. A failed operation leaves
every row exactly as it was.

Net worth invariant, after every committed operation:

    total_cash(team) == cash(team) + sum(value of properties owned by team)
"""

from decimal import Decimal
from typing import Dict, List, Optional, Any, Tuple

from .config import BankConfig, get_config
from .storage import StorageInterface
from .teams import Team, TeamStore
from .properties import Property, PropertyStore, PROPERTY_CATALOG
from .transactions import TransactionLog, TransactionType, LedgerTransaction
from .errors import ValidationError, ConflictError
from .money import AmountLike, ZERO, to_amount, to_positive_amount
from .logging_config import get_logger, log_action


class TeamLedger:
    """
    Cash, property and valuation operations over the team/property stores
    """

    def __init__(self, storage: StorageInterface, config: Optional[BankConfig] = None):
        self.storage = storage
        self.config = config or get_config()
        self.teams = TeamStore(storage, max_teams=self.config.max_teams)
        self.properties = PropertyStore(storage)
        self.log = TransactionLog(storage)
        self.logger = get_logger("monopoly_bank.ledger")

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def _revalue(self, team: Team) -> Team:
        """Recompute and persist a team's net worth from current holdings"""
        team.total_cash = team.cash + self.properties.owned_value(team.team_id)
        self.teams.save(team)
        return team

    def _debit(self, team: Team, amount: Decimal) -> None:
        new_cash = team.cash - amount
        if new_cash < ZERO and not self.config.allow_negative_cash:
            raise ValidationError(
                f"Insufficient cash: team {team.team_id} has {team.cash}, needs {amount}"
            )
        team.cash = new_cash

    def _replay(self, idempotency_key: Optional[str]) -> Optional[LedgerTransaction]:
        if not idempotency_key:
            return None
        existing = self.log.find_by_idempotency_key(idempotency_key)
        if existing:
            log_action(
                self.logger, "info", "Duplicate request ignored",
                action="replay", resource=f"team:{existing.team_id}",
                extra={"idempotency_key": idempotency_key}
            )
        return existing

    def _validate_team_id(self, team_id: Any, field_name: str = "team_id") -> int:
        if isinstance(team_id, bool) or not isinstance(team_id, int):
            raise ValidationError(f"{field_name} must be an integer, got {team_id!r}")
        return team_id

    # ------------------------------------------------------------------
    # Cash operations
    # ------------------------------------------------------------------

    def add_cash(self, team_id: int, amount: AmountLike,
                 idempotency_key: Optional[str] = None) -> Team:
        """
        Credit cash to a team

        Raises:
            ValidationError: amount is not positive
            NotFoundError: team does not exist
        """
        team_id = self._validate_team_id(team_id)
        amount = to_positive_amount(amount)

        with self.storage.atomic():
            if self._replay(idempotency_key):
                return self.teams.require(team_id)

            team = self.teams.require_for_update(team_id)
            team.cash += amount
            self._revalue(team)
            self.log.record(
                TransactionType.ADD_CASH, team.team_id, amount,
                team.cash, team.total_cash, idempotency_key=idempotency_key
            )

        log_action(
            self.logger, "info", f"Added {amount} to team {team_id}",
            action="add_cash", resource=f"team:{team_id}",
            extra={"amount": str(amount), "cash": str(team.cash)}
        )
        return team

    def remove_cash(self, team_id: int, amount: AmountLike,
                    idempotency_key: Optional[str] = None) -> Team:
        """
        Debit cash from a team. The balance may go negative unless
        allow_negative_cash is switched off.
        """
        team_id = self._validate_team_id(team_id)
        amount = to_positive_amount(amount)

        with self.storage.atomic():
            if self._replay(idempotency_key):
                return self.teams.require(team_id)

            team = self.teams.require_for_update(team_id)
            self._debit(team, amount)
            self._revalue(team)
            self.log.record(
                TransactionType.REMOVE_CASH, team.team_id, amount,
                team.cash, team.total_cash, idempotency_key=idempotency_key
            )

        log_action(
            self.logger, "info", f"Removed {amount} from team {team_id}",
            action="remove_cash", resource=f"team:{team_id}",
            extra={"amount": str(amount), "cash": str(team.cash)}
        )
        return team

    def transfer_cash(self, from_team_id: int, to_team_id: int, amount: AmountLike,
                      idempotency_key: Optional[str] = None) -> Tuple[Team, Team]:
        """
        Move cash between two teams, all or nothing

        Returns:
            (source team, destination team) after the transfer
        """
        from_team_id = self._validate_team_id(from_team_id, "from_team_id")
        to_team_id = self._validate_team_id(to_team_id, "to_team_id")
        amount = to_positive_amount(amount)
        if from_team_id == to_team_id:
            raise ValidationError("Source and destination teams cannot be the same")

        with self.storage.atomic():
            if self._replay(idempotency_key):
                return self.teams.require(from_team_id), self.teams.require(to_team_id)

            # Lock rows in ascending id order
            locked = {
                team_id: self.teams.require_for_update(team_id)
                for team_id in sorted((from_team_id, to_team_id))
            }
            source, destination = locked[from_team_id], locked[to_team_id]

            self._debit(source, amount)
            destination.cash += amount
            self._revalue(source)
            self._revalue(destination)

            self.log.record(
                TransactionType.TRANSFER, source.team_id, -amount,
                source.cash, source.total_cash,
                counterparty_team_id=destination.team_id,
                idempotency_key=idempotency_key
            )
            self.log.record(
                TransactionType.TRANSFER, destination.team_id, amount,
                destination.cash, destination.total_cash,
                counterparty_team_id=source.team_id
            )

        log_action(
            self.logger, "info", f"Transferred {amount} from team {from_team_id} to team {to_team_id}",
            action="transfer_cash", resource=f"team:{from_team_id}",
            extra={"amount": str(amount), "to_team_id": to_team_id}
        )
        return source, destination

    # ------------------------------------------------------------------
    # Property operations
    # ------------------------------------------------------------------

    def purchase_property(self, property_name: str, team_id: int) -> Tuple[Team, Property]:
        """
        Assign an available property to a team

        When purchase_debits_cash is enabled the property's value is also
        taken from the buyer's cash in the same transaction.

        Raises:
            NotFoundError: property or team does not exist
            ConflictError: property already owned
        """
        property_name = self._clean_property_name(property_name)
        team_id = self._validate_team_id(team_id)

        with self.storage.atomic():
            prop = self.properties.require_for_update(property_name)
            if not prop.is_available:
                raise ConflictError(
                    f"Property '{property_name}' is already owned by team {prop.owner_team_id}"
                )
            team = self.teams.require_for_update(team_id)

            price = ZERO
            if self.config.purchase_debits_cash:
                price = prop.property_value
                self._debit(team, price)

            prop.owner_team_id = team.team_id
            self.properties.save(prop)
            self._revalue(team)
            self.log.record(
                TransactionType.PURCHASE, team.team_id, ZERO - price,
                team.cash, team.total_cash, property_name=prop.property_name,
                metadata={"property_value": str(prop.property_value)}
            )

        log_action(
            self.logger, "info", f"Team {team_id} purchased {property_name}",
            action="purchase_property", resource=f"property:{property_name}",
            extra={"team_id": team_id, "price": str(price)}
        )
        return team, prop

    def remove_property_from_team(self, property_name: str, team_id: int) -> Tuple[Team, Property]:
        """
        Return a property owned by the team to the available pool

        Raises:
            NotFoundError: property or team does not exist
            ConflictError: property is not owned by this team
        """
        property_name = self._clean_property_name(property_name)
        team_id = self._validate_team_id(team_id)

        with self.storage.atomic():
            prop = self.properties.require_for_update(property_name)
            if prop.owner_team_id != team_id:
                raise ConflictError(f"Property '{property_name}' is not owned by team {team_id}")
            team = self.teams.require_for_update(team_id)

            prop.owner_team_id = None
            self.properties.save(prop)
            self._revalue(team)
            self.log.record(
                TransactionType.RELEASE, team.team_id, ZERO,
                team.cash, team.total_cash, property_name=prop.property_name
            )

        log_action(
            self.logger, "info", f"Team {team_id} released {property_name}",
            action="remove_property_from_team", resource=f"property:{property_name}",
            extra={"team_id": team_id}
        )
        return team, prop

    def list_properties(self) -> List[Property]:
        """Full catalog, owned or not, ordered by name"""
        with self.storage.atomic():
            return self.properties.list_all()

    def list_available_properties(self) -> List[Property]:
        """Unowned properties ordered by name, case-insensitively"""
        with self.storage.atomic():
            return self.properties.list_available()

    def _clean_property_name(self, property_name: Any) -> str:
        if not isinstance(property_name, str) or not property_name.strip():
            raise ValidationError("Please enter a property name")
        return property_name.strip()

    # ------------------------------------------------------------------
    # Summary & leaderboard
    # ------------------------------------------------------------------

    def get_team(self, team_id: int) -> Team:
        team_id = self._validate_team_id(team_id)
        with self.storage.atomic():
            return self.teams.require(team_id)

    def list_teams(self) -> List[Team]:
        with self.storage.atomic():
            return self.teams.list_all()

    def get_team_summary(self, team_id: int) -> Dict[str, Any]:
        """Team row and owned properties, read from one consistent snapshot"""
        team_id = self._validate_team_id(team_id)
        with self.storage.atomic():
            # Row lock waits out any purchase or release in flight for the team
            team = self.teams.require_for_update(team_id)
            owned = self.properties.list_owned_by(team_id)

        summary = team.to_row()
        summary["owned_properties"] = [
            {"property_name": p.property_name, "value": p.property_value}
            for p in owned
        ]
        return summary

    def update_total(self, team_id: int) -> Team:
        """Recompute a team's net worth from its cash and holdings"""
        team_id = self._validate_team_id(team_id)
        with self.storage.atomic():
            team = self.teams.require_for_update(team_id)
            return self._revalue(team)

    def get_team_leaderboard(self) -> List[Dict[str, Any]]:
        """All teams by cash, richest first; ties go to the lower team id"""
        with self.storage.atomic():
            teams = self.teams.list_all()
        teams.sort(key=lambda t: (-t.cash, t.team_id))
        return [
            {
                "team_id": t.team_id,
                "team_name": t.team_name,
                "cash": t.cash,
                "total_cash": t.total_cash,
            }
            for t in teams
        ]

    def get_team_transactions(self, team_id: int, limit: Optional[int] = 50) -> List[LedgerTransaction]:
        team_id = self._validate_team_id(team_id)
        with self.storage.atomic():
            self.teams.require(team_id)
            return self.log.for_team(team_id, limit=limit)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def create_team(self, team_id: int, team_name: Optional[str] = None,
                    cash: Optional[AmountLike] = None) -> Team:
        """Provision a team with its starting cash"""
        starting = to_amount(cash if cash is not None else self.config.starting_cash, "cash")
        with self.storage.atomic():
            team = self.teams.create(self.teams.validate_team_id(team_id), team_name, starting)

        log_action(
            self.logger, "info", f"Team {team_id} created",
            action="create_team", resource=f"team:{team_id}",
            extra={"cash": str(starting)}
        )
        return team

    def add_properties_bulk(self) -> List[Property]:
        """
        Load the standard property catalog. Names that already exist are
        left untouched, so running it again never duplicates or resets
        ownership.
        """
        inserted = 0
        with self.storage.atomic():
            for name, value in PROPERTY_CATALOG:
                if not self.properties.exists(name):
                    self.properties.create(name, Decimal(value).quantize(Decimal('0.01')))
                    inserted += 1
            catalog = self.properties.list_all()

        log_action(
            self.logger, "info", f"Property catalog loaded ({inserted} new)",
            action="add_properties_bulk", resource="properties",
            extra={"inserted": inserted, "total": len(catalog)}
        )
        return catalog

    def edit_team(
        self,
        team_id: int,
        new_team_id: Optional[int] = None,
        team_name: Optional[str] = None,
        cash: Optional[AmountLike] = None,
        total_cash: Optional[AmountLike] = None
    ) -> Team:
        """
        Overwrite team fields directly.

        Administrative escape hatch: cash and total_cash are written as
        given. When cash changes without an explicit total_cash the total is
        recomputed. Renumbering moves owned properties and log entries to
        the new id.
        """
        team_id = self._validate_team_id(team_id)
        new_cash = to_amount(cash, "cash") if cash is not None else None
        new_total = to_amount(total_cash, "total_cash") if total_cash is not None else None
        if team_name is not None and not team_name.strip():
            raise ValidationError("team_name cannot be empty")

        with self.storage.atomic():
            team = self.teams.require_for_update(team_id)
            old_cash = team.cash

            if new_team_id is not None and new_team_id != team_id:
                self.teams.validate_team_id(new_team_id, "new_team_id")
                if self.teams.exists(new_team_id):
                    raise ConflictError(f"Team {new_team_id} already exists")
                for prop in self.properties.list_owned_by(team_id):
                    prop.owner_team_id = new_team_id
                    self.properties.save(prop)
                self.log.renumber_team(team_id, new_team_id)
                self.teams.delete(team_id)
                team.team_id = new_team_id

            if team_name is not None:
                team.team_name = team_name.strip()
            if new_cash is not None:
                team.cash = new_cash

            if new_total is not None:
                team.total_cash = new_total
                self.teams.save(team)
            else:
                self._revalue(team)

            self.log.record(
                TransactionType.ADJUSTMENT, team.team_id, team.cash - old_cash,
                team.cash, team.total_cash,
                metadata={"previous_team_id": team_id} if team.team_id != team_id else None
            )

        log_action(
            self.logger, "warning", f"Team {team_id} edited",
            action="edit_team", resource=f"team:{team.team_id}",
            extra={
                "new_team_id": new_team_id,
                "team_name": team_name,
                "cash": str(new_cash) if new_cash is not None else None,
                "total_cash": str(new_total) if new_total is not None else None,
            }
        )
        return team

    def remove_team(self, team_id: int) -> Dict[str, Any]:
        """Delete a team; everything it owned becomes available again"""
        team_id = self._validate_team_id(team_id)
        with self.storage.atomic():
            self.teams.require_for_update(team_id)
            released = self.properties.list_owned_by(team_id)
            for prop in released:
                prop.owner_team_id = None
                self.properties.save(prop)
            self.teams.delete(team_id)

        log_action(
            self.logger, "warning", f"Team {team_id} removed",
            action="remove_team", resource=f"team:{team_id}",
            extra={"released_properties": len(released)}
        )
        return {
            "team_id": team_id,
            "released_properties": [p.property_name for p in released],
        }

    def provision_default_teams(self) -> List[Team]:
        """
        Create any missing default teams (1..default_team_count) with
        starting cash. Existing teams are left as they are.
        """
        starting = to_amount(self.config.starting_cash, "starting_cash")
        team_count = min(self.config.default_team_count, self.config.max_teams)

        created = []
        with self.storage.atomic():
            for team_id in range(1, team_count + 1):
                if not self.teams.exists(team_id):
                    created.append(self.teams.create(team_id, cash=starting))

        if created:
            log_action(
                self.logger, "info", f"Provisioned {len(created)} teams",
                action="provision_default_teams", resource="teams",
                extra={"team_ids": [t.team_id for t in created], "starting_cash": str(starting)}
            )
        return created

    def reset_all_tables(self) -> Dict[str, Any]:
        """
        Wipe teams, properties and the transaction log, then provision the
        default teams with starting cash. Properties must be reloaded with
        add_properties_bulk.
        """
        with self.storage.atomic():
            self.log.clear()
            self.properties.clear()
            self.teams.clear()
            teams = self.provision_default_teams()

        log_action(
            self.logger, "warning", "All tables reset",
            action="reset_all_tables", resource="ledger",
            extra={"teams": len(teams)}
        )
        return {
            "teams": len(teams),
            "starting_cash": to_amount(self.config.starting_cash, "starting_cash"),
            "properties": 0,
        }

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def verify_net_worth(self) -> Dict[str, Any]:
        """
        Check the net worth invariant for every team

        Returns:
            Dictionary with 'valid' flag and per-team mismatches
        """
        with self.storage.atomic():
            mismatches = []
            for team in self.teams.list_all():
                expected = team.cash + self.properties.owned_value(team.team_id)
                if team.total_cash != expected:
                    mismatches.append({
                        "team_id": team.team_id,
                        "total_cash": team.total_cash,
                        "expected": expected,
                    })
        return {"valid": not mismatches, "mismatches": mismatches}
