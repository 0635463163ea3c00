"""
Team, summary and leaderboard endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from .dependencies import BankSystem, get_bank_system
from .schemas import envelope


router = APIRouter()


@router.get("")
async def list_teams(system: BankSystem = Depends(get_bank_system)):
    """All teams ordered by id"""
    return envelope([t.to_row() for t in system.ledger.list_teams()])


@router.get("/leaderboard")
async def get_team_leaderboard(system: BankSystem = Depends(get_bank_system)):
    """Teams ordered by cash, richest first"""
    return envelope(system.ledger.get_team_leaderboard())


@router.get("/{team_id}")
async def get_team(team_id: int, system: BankSystem = Depends(get_bank_system)):
    return envelope(system.ledger.get_team(team_id).to_row())


@router.get("/{team_id}/summary")
async def get_team_summary(team_id: int, system: BankSystem = Depends(get_bank_system)):
    """Cash, net worth and owned properties"""
    return envelope(system.ledger.get_team_summary(team_id))


@router.post("/{team_id}/update-total")
async def update_total(team_id: int, system: BankSystem = Depends(get_bank_system)):
    """Recompute net worth from cash and holdings"""
    return envelope(system.ledger.update_total(team_id).to_row())


@router.get("/{team_id}/transactions")
async def get_team_transactions(
    team_id: int,
    limit: Optional[int] = Query(50, ge=1, le=500),
    system: BankSystem = Depends(get_bank_system)
):
    """Transaction history for a team, most recent first"""
    entries = system.ledger.get_team_transactions(team_id, limit=limit)
    return envelope([e.to_row() for e in entries])
