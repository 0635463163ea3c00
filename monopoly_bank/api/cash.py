"""
Cash endpoints: add, remove and transfer
"""

from fastapi import APIRouter, Depends

from .dependencies import BankSystem, get_bank_system
from .schemas import CashRequest, TransferRequest, envelope


router = APIRouter()


@router.post("/add")
async def add_cash(
    request: CashRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Add cash to a team"""
    team = system.ledger.add_cash(request.team_id, request.amount, request.idempotency_key)
    return envelope(team.to_row())


@router.post("/remove")
async def remove_cash(
    request: CashRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Remove cash from a team"""
    team = system.ledger.remove_cash(request.team_id, request.amount, request.idempotency_key)
    return envelope(team.to_row())


@router.post("/transfer")
async def transfer_cash(
    request: TransferRequest,
    system: BankSystem = Depends(get_bank_system)
):
    """Transfer cash between two teams"""
    source, destination = system.ledger.transfer_cash(
        request.from_team_id, request.to_team_id, request.amount, request.idempotency_key
    )
    return envelope({
        "from_team": source.to_row(),
        "to_team": destination.to_row(),
    })
