"""
Property endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import BankSystem, get_bank_system
from .schemas import PropertyRequest, envelope


router = APIRouter()


@router.get("")
async def list_properties(system: BankSystem = Depends(get_bank_system)):
    """Full catalog with current owners"""
    props = system.ledger.list_properties()
    return envelope([p.to_row() for p in props])


@router.get("/available")
async def get_available_properties(system: BankSystem = Depends(get_bank_system)):
    """Unowned properties, ordered by name"""
    props = system.ledger.list_available_properties()
    return envelope([
        {"property_name": p.property_name, "property_value": p.property_value}
        for p in props
    ])


@router.post("/purchase")
async def purchase_property(
    request: PropertyRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Buy an available property for a team"""
    team, prop = system.ledger.purchase_property(request.property_name, request.team_id)
    return envelope({"team": team.to_row(), "property": prop.to_row()})


@router.post("/release")
async def remove_property_from_team(
    request: PropertyRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Hand a property back to the available pool"""
    team, prop = system.ledger.remove_property_from_team(request.property_name, request.team_id)
    return envelope({"team": team.to_row(), "property": prop.to_row()})
