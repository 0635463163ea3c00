"""
Test suite for the team ledger

Covers cash operations, transfers, net worth maintenance, concurrency and
rollback of failed operations.
"""

import pytest
import threading
from decimal import Decimal

from monopoly_bank.config import BankConfig
from monopoly_bank.storage import InMemoryStorage, SQLiteStorage
from monopoly_bank.ledger import TeamLedger
from monopoly_bank.transactions import TransactionType
from monopoly_bank.errors import ValidationError, NotFoundError, ConflictError


def make_config(**overrides) -> BankConfig:
    settings = {"database_url": "memory://", "starting_cash": "1500.00"}
    settings.update(overrides)
    return BankConfig(**settings)


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request):
    """Ledger with the eight default teams and the property catalog loaded"""
    storage = InMemoryStorage() if request.param == "memory" else SQLiteStorage()
    ledger = TeamLedger(storage, make_config())
    ledger.provision_default_teams()
    ledger.add_properties_bulk()
    yield ledger
    storage.close()


def assert_net_worth_invariant(ledger: TeamLedger):
    result = ledger.verify_net_worth()
    assert result["valid"], result["mismatches"]


class TestAddRemoveCash:

    def test_add_cash(self, ledger):
        team = ledger.add_cash(1, Decimal("200"))
        assert team.cash == Decimal("1700.00")
        assert team.total_cash == Decimal("1700.00")
        assert ledger.get_team(1).cash == Decimal("1700.00")

    def test_amount_strings_are_accepted(self, ledger):
        team = ledger.add_cash(2, "12.345")
        assert team.cash == Decimal("1512.35")

    @pytest.mark.parametrize("amount", [0, "-5", "0.001", "abc", "", None, "NaN"])
    def test_invalid_amounts_rejected(self, ledger, amount):
        with pytest.raises(ValidationError):
            ledger.add_cash(1, amount)
        with pytest.raises(ValidationError):
            ledger.remove_cash(1, amount)
        assert ledger.get_team(1).cash == Decimal("1500.00")

    def test_unknown_team(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.add_cash(42, 100)
        # NotFoundError is reported as a validation failure too
        with pytest.raises(ValidationError):
            ledger.remove_cash(42, 100)

    def test_non_integer_team_id(self, ledger):
        with pytest.raises(ValidationError):
            ledger.add_cash("1", 100)

    def test_add_then_remove_restores_cash(self, ledger):
        before = ledger.get_team(3).cash
        ledger.add_cash(3, "275.50")
        team = ledger.remove_cash(3, "275.50")
        assert team.cash == before

    def test_negative_balance_scenario(self, ledger):
        ledger.purchase_property("Boardwalk", 1)

        team = ledger.add_cash(1, 200)
        assert team.cash == Decimal("1700.00")

        team = ledger.remove_cash(1, 2000)
        assert team.cash == Decimal("-300.00")
        assert team.is_in_debt
        assert team.total_cash == Decimal("-300.00") + Decimal("400.00")
        assert_net_worth_invariant(ledger)

    def test_negative_balance_can_be_disabled(self):
        ledger = TeamLedger(InMemoryStorage(), make_config(allow_negative_cash=False))
        ledger.provision_default_teams()

        with pytest.raises(ValidationError, match="Insufficient cash"):
            ledger.remove_cash(1, 1500.01)
        assert ledger.get_team(1).cash == Decimal("1500.00")

        assert ledger.remove_cash(1, 1500).cash == Decimal("0.00")

    def test_operations_are_logged(self, ledger):
        ledger.add_cash(1, 100)
        ledger.remove_cash(1, 30)

        history = ledger.get_team_transactions(1)
        assert [e.transaction_type for e in history] == [
            TransactionType.REMOVE_CASH, TransactionType.ADD_CASH
        ]
        assert history[0].cash_after == Decimal("1570.00")


class TestIdempotency:

    def test_repeated_key_applies_once(self, ledger):
        ledger.add_cash(1, 100, idempotency_key="req-1")
        team = ledger.add_cash(1, 100, idempotency_key="req-1")
        assert team.cash == Decimal("1600.00")

    def test_distinct_keys_apply_separately(self, ledger):
        ledger.remove_cash(1, 100, idempotency_key="a")
        team = ledger.remove_cash(1, 100, idempotency_key="b")
        assert team.cash == Decimal("1300.00")

    def test_transfer_replay(self, ledger):
        ledger.transfer_cash(1, 2, 50, idempotency_key="t-1")
        source, destination = ledger.transfer_cash(1, 2, 50, idempotency_key="t-1")
        assert source.cash == Decimal("1450.00")
        assert destination.cash == Decimal("1550.00")


class TestTransferCash:

    def test_transfer_moves_cash(self, ledger):
        source, destination = ledger.transfer_cash(1, 2, "250.00")
        assert source.cash == Decimal("1250.00")
        assert destination.cash == Decimal("1750.00")
        assert source.total_cash == source.cash
        assert destination.total_cash == destination.cash

    def test_transfer_conserves_pair_total(self, ledger):
        ledger.add_cash(5, 333)
        before = ledger.get_team(5).cash + ledger.get_team(4).cash
        ledger.transfer_cash(5, 4, "1234.56")
        after = ledger.get_team(5).cash + ledger.get_team(4).cash
        assert before == after

    def test_transfer_to_lower_team_id(self, ledger):
        source, destination = ledger.transfer_cash(7, 3, 100)
        assert source.team_id == 7
        assert destination.team_id == 3
        assert source.cash == Decimal("1400.00")
        assert destination.cash == Decimal("1600.00")

    def test_same_team_rejected(self, ledger):
        with pytest.raises(ValidationError, match="cannot be the same"):
            ledger.transfer_cash(1, 1, 100)

    def test_non_positive_amount_rejected(self, ledger):
        with pytest.raises(ValidationError):
            ledger.transfer_cash(1, 2, 0)

    def test_unknown_destination_leaves_source_untouched(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.transfer_cash(1, 99, 100)
        assert ledger.get_team(1).cash == Decimal("1500.00")

    def test_transfer_recomputes_net_worth_with_properties(self, ledger):
        ledger.purchase_property("Park Place", 1)
        source, _ = ledger.transfer_cash(1, 2, 500)
        assert source.total_cash == Decimal("1000.00") + Decimal("350.00")
        assert_net_worth_invariant(ledger)

    def test_transfer_logs_both_sides(self, ledger):
        ledger.transfer_cash(1, 2, 10)
        out_entry = ledger.get_team_transactions(1)[0]
        in_entry = ledger.get_team_transactions(2)[0]
        assert out_entry.amount == Decimal("-10.00")
        assert out_entry.counterparty_team_id == 2
        assert in_entry.amount == Decimal("10.00")
        assert in_entry.counterparty_team_id == 1


class TestRollback:
    """A failure part-way through an operation leaves every row untouched"""

    def test_failed_transfer_rolls_back_both_teams(self, ledger, monkeypatch):
        def broken_record(*args, **kwargs):
            raise RuntimeError("log unavailable")

        monkeypatch.setattr(ledger.log, "record", broken_record)

        with pytest.raises(RuntimeError):
            ledger.transfer_cash(1, 2, 300)

        assert ledger.get_team(1).cash == Decimal("1500.00")
        assert ledger.get_team(2).cash == Decimal("1500.00")

    def test_failed_purchase_keeps_property_available(self, ledger, monkeypatch):
        def broken_revalue(team):
            raise RuntimeError("valuation failed")

        monkeypatch.setattr(ledger, "_revalue", broken_revalue)

        with pytest.raises(RuntimeError):
            ledger.purchase_property("Boardwalk", 1)

        names = [p.property_name for p in ledger.list_available_properties()]
        assert "Boardwalk" in names


class TestConcurrency:

    def test_concurrent_adds_all_apply(self):
        ledger = TeamLedger(InMemoryStorage(), make_config())
        ledger.provision_default_teams()

        amounts = [Decimal("1.25"), Decimal("10"), Decimal("3.50"), Decimal("7")] * 10
        barrier = threading.Barrier(len(amounts))
        errors = []

        def worker(amount):
            try:
                barrier.wait()
                ledger.add_cash(1, amount)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(a,)) for a in amounts]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert ledger.get_team(1).cash == Decimal("1500.00") + sum(amounts)

    def test_concurrent_opposing_transfers_conserve_cash(self):
        ledger = TeamLedger(InMemoryStorage(), make_config())
        ledger.provision_default_teams()

        def shuffle(src, dst):
            for _ in range(25):
                ledger.transfer_cash(src, dst, 10)

        threads = [
            threading.Thread(target=shuffle, args=(1, 2)),
            threading.Thread(target=shuffle, args=(2, 1)),
            threading.Thread(target=shuffle, args=(2, 3)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        total = sum(ledger.get_team(i).cash for i in (1, 2, 3))
        assert total == Decimal("4500.00")
        assert ledger.get_team(1).cash == Decimal("1500.00")
        assert ledger.get_team(3).cash == Decimal("1750.00")


class TestSummaryAndLeaderboard:

    def test_team_summary(self, ledger):
        ledger.purchase_property("Baltic Avenue", 4)
        ledger.purchase_property("Mediterranean Avenue", 4)
        ledger.add_cash(4, 40)

        summary = ledger.get_team_summary(4)
        assert summary["team_id"] == 4
        assert summary["team_name"] == "Team 4"
        assert summary["cash"] == Decimal("1540.00")
        assert summary["total_cash"] == Decimal("1660.00")
        assert summary["owned_properties"] == [
            {"property_name": "Baltic Avenue", "value": Decimal("60.00")},
            {"property_name": "Mediterranean Avenue", "value": Decimal("60.00")},
        ]

    def test_summary_unknown_team(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_team_summary(12)

    def test_summary_locks_team_row(self, ledger, monkeypatch):
        locked = []
        original = ledger.storage.load_for_update

        def spy(table, record_id):
            locked.append((table, record_id))
            return original(table, record_id)

        monkeypatch.setattr(ledger.storage, "load_for_update", spy)
        ledger.get_team_summary(3)
        assert ("teams", "3") in locked

    def test_summary_consistent_while_team_trades(self, ledger):
        errors = []

        def trade():
            try:
                for _ in range(30):
                    ledger.purchase_property("Boardwalk", 5)
                    ledger.transfer_cash(5, 6, 10)
                    ledger.remove_property_from_team("Boardwalk", 5)
                    ledger.transfer_cash(6, 5, 10)
            except Exception as e:
                errors.append(e)

        worker = threading.Thread(target=trade)
        summaries = []
        worker.start()
        while worker.is_alive():
            summaries.append(ledger.get_team_summary(5))
        worker.join()
        summaries.append(ledger.get_team_summary(5))

        assert not errors
        for summary in summaries:
            owned = sum((p["value"] for p in summary["owned_properties"]), Decimal("0.00"))
            assert summary["total_cash"] == summary["cash"] + owned
        assert summaries[-1]["cash"] == Decimal("1500.00")
        assert summaries[-1]["owned_properties"] == []

    def test_leaderboard_orders_by_cash_then_team_id(self, ledger):
        ledger.remove_cash(1, 300)   # 1200
        ledger.add_cash(3, 300)      # 1800
        ledger.add_cash(6, 300)      # 1800, ties with team 3

        board = ledger.get_team_leaderboard()
        assert [row["team_id"] for row in board] == [3, 6, 2, 4, 5, 7, 8, 1]
        assert board[0]["cash"] == Decimal("1800.00")
        assert board[-1]["cash"] == Decimal("1200.00")

    def test_leaderboard_ignores_property_value(self, ledger):
        ledger.purchase_property("Boardwalk", 8)
        ledger.remove_cash(8, 1)
        board = ledger.get_team_leaderboard()
        assert board[-1]["team_id"] == 8
        assert board[-1]["total_cash"] == Decimal("1899.00")

    def test_update_total_repairs_stale_total(self, ledger):
        ledger.purchase_property("Boardwalk", 2)
        ledger.edit_team(2, total_cash="0")
        assert not ledger.verify_net_worth()["valid"]

        team = ledger.update_total(2)
        assert team.total_cash == Decimal("1900.00")
        assert_net_worth_invariant(ledger)


class TestAdministration:

    def test_create_team(self):
        ledger = TeamLedger(InMemoryStorage(), make_config())
        team = ledger.create_team(1, "Top Hat")
        assert team.team_name == "Top Hat"
        assert team.cash == Decimal("1500.00")
        assert team.total_cash == Decimal("1500.00")

        custom = ledger.create_team(2, cash="250")
        assert custom.team_name == "Team 2"
        assert custom.cash == Decimal("250.00")

    def test_create_team_rejects_duplicates_and_range(self, ledger):
        with pytest.raises(ConflictError):
            ledger.create_team(1)
        with pytest.raises(ValidationError):
            ledger.create_team(9)
        with pytest.raises(ValidationError):
            ledger.create_team(0)

    def test_edit_team_fields(self, ledger):
        team = ledger.edit_team(1, team_name="Racecar", cash="999.99")
        assert team.team_name == "Racecar"
        assert team.cash == Decimal("999.99")
        assert team.total_cash == Decimal("999.99")
        assert ledger.get_team_transactions(1)[0].transaction_type == TransactionType.ADJUSTMENT

    def test_edit_team_total_cash_overwrite(self, ledger):
        team = ledger.edit_team(1, cash="100", total_cash="5000")
        assert team.cash == Decimal("100.00")
        assert team.total_cash == Decimal("5000.00")

    def test_edit_team_renumber_moves_properties(self):
        ledger = TeamLedger(InMemoryStorage(), make_config(default_team_count=4))
        ledger.provision_default_teams()
        ledger.add_properties_bulk()
        ledger.purchase_property("Water Works", 2)
        ledger.add_cash(2, 5)

        team = ledger.edit_team(2, new_team_id=6)
        assert team.team_id == 6
        assert team.total_cash == Decimal("1505.00") + Decimal("150.00")
        with pytest.raises(NotFoundError):
            ledger.get_team(2)

        summary = ledger.get_team_summary(6)
        assert [p["property_name"] for p in summary["owned_properties"]] == ["Water Works"]
        history = ledger.get_team_transactions(6)
        assert TransactionType.ADD_CASH in [e.transaction_type for e in history]

    def test_edit_team_renumber_conflict(self, ledger):
        with pytest.raises(ConflictError):
            ledger.edit_team(1, new_team_id=2)
        with pytest.raises(ValidationError):
            ledger.edit_team(1, new_team_id=50)
        assert ledger.get_team(1).team_id == 1

    def test_edit_unknown_team(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.edit_team(77, team_name="Ghost")

    def test_remove_team_releases_properties(self, ledger):
        ledger.purchase_property("Boardwalk", 5)
        result = ledger.remove_team(5)
        assert result["released_properties"] == ["Boardwalk"]

        with pytest.raises(NotFoundError):
            ledger.get_team(5)
        assert "Boardwalk" in [p.property_name for p in ledger.list_available_properties()]

    def test_remove_unknown_team(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.remove_team(99)

    def test_reset_all_tables(self, ledger):
        ledger.purchase_property("Boardwalk", 1)
        ledger.add_cash(1, 500)
        ledger.remove_team(8)

        result = ledger.reset_all_tables()
        assert result["teams"] == 8

        teams = ledger.list_teams()
        assert [t.team_id for t in teams] == list(range(1, 9))
        assert all(t.cash == Decimal("1500.00") for t in teams)
        assert ledger.list_properties() == []
        assert ledger.log.count() == 0

    def test_provision_default_teams_keeps_existing(self, ledger):
        ledger.add_cash(1, 100)
        ledger.remove_team(3)
        created = ledger.provision_default_teams()
        assert [t.team_id for t in created] == [3]
        assert ledger.get_team(1).cash == Decimal("1600.00")
