"""
Pydantic schemas for API requests and the response envelope
"""

from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr

from ..errors import LedgerError


# Amounts may arrive as decimal strings (preferred) or JSON numbers; strict
# types keep JSON booleans from coercing to 1 or 0
AmountField = Union[StrictStr, StrictInt, StrictFloat]


class CashRequest(BaseModel):
    team_id: int
    amount: AmountField = Field(..., description="Amount greater than 0, as a decimal string")
    idempotency_key: Optional[str] = Field(None, description="Retry-safe request key")


class TransferRequest(BaseModel):
    from_team_id: int
    to_team_id: int
    amount: AmountField = Field(..., description="Amount greater than 0, as a decimal string")
    idempotency_key: Optional[str] = None


class PropertyRequest(BaseModel):
    property_name: str
    team_id: int


class CreateTeamRequest(BaseModel):
    team_id: int
    team_name: Optional[str] = None
    cash: Optional[AmountField] = Field(None, description="Starting cash; configured default if omitted")


class EditTeamRequest(BaseModel):
    new_team_id: Optional[int] = None
    team_name: Optional[str] = None
    cash: Optional[AmountField] = None
    total_cash: Optional[AmountField] = None


def to_json(value: Any) -> Any:
    """Make ledger values JSON-safe; Decimals become strings, never floats"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def envelope(data: Any) -> Dict[str, Any]:
    """Successful response body"""
    return {"data": to_json(data), "error": None}


def error_body(error_type: str, message: str, retryable: bool = False) -> Dict[str, Any]:
    """Failed response body; message is suitable for direct display"""
    return {
        "data": None,
        "error": {
            "type": error_type,
            "message": message,
            "retryable": retryable,
        }
    }


def ledger_error_body(error: LedgerError) -> Dict[str, Any]:
    return error_body(error.error_type, error.message, error.retryable)
