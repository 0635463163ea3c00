"""
Administrative endpoints: provisioning, direct edits, catalog load and reset
"""

from fastapi import APIRouter, Depends, status

from .dependencies import BankSystem, get_bank_system
from .schemas import CreateTeamRequest, EditTeamRequest, envelope


router = APIRouter()


@router.post("/teams", status_code=status.HTTP_201_CREATED)
async def create_team(
    request: CreateTeamRequest,
    system: BankSystem = Depends(get_bank_system)
):
    team = system.ledger.create_team(request.team_id, request.team_name, request.cash)
    return envelope(team.to_row())


@router.put("/teams/{team_id}")
async def edit_team(
    team_id: int,
    request: EditTeamRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Overwrite team fields directly (bypasses ledger rules)"""
    team = system.ledger.edit_team(
        team_id,
        new_team_id=request.new_team_id,
        team_name=request.team_name,
        cash=request.cash,
        total_cash=request.total_cash
    )
    return envelope(team.to_row())


@router.delete("/teams/{team_id}")
async def remove_team(team_id: int, system: BankSystem = Depends(get_bank_system)):
    return envelope(system.ledger.remove_team(team_id))


@router.post("/properties/bulk")
async def add_properties_bulk(system: BankSystem = Depends(get_bank_system)):
    """Load the standard property catalog (idempotent)"""
    props = system.ledger.add_properties_bulk()
    return envelope([p.to_row() for p in props])


@router.post("/reset")
async def reset_all_tables(system: BankSystem = Depends(get_bank_system)):
    """Clear every table and re-provision the default teams. Irreversible."""
    return envelope(system.ledger.reset_all_tables())


@router.get("/integrity")
async def verify_net_worth(system: BankSystem = Depends(get_bank_system)):
    """Check total_cash == cash + owned property value for every team"""
    return envelope(system.ledger.verify_net_worth())
