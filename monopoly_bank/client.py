"""
Monopoly Bank Client Module

REST client for the ledger API, used by player devices and scripts. Unwraps
the ``{data, error}`` envelope, turns amounts back into Decimal and re-raises
server errors as the matching ledger error class. Transient failures are
retried with exponential backoff; validation errors and conflicts are not.
"""

import httpx
import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .errors import ERROR_TYPES, LedgerError, TransientError

logger = logging.getLogger("monopoly_bank.client")

MONEY_KEYS = {"cash", "total_cash", "property_value", "value", "amount",
              "cash_after", "total_cash_after", "starting_cash", "expected"}


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: Decimal(str(v)) if k in MONEY_KEYS and v is not None else _decode(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class MonopolyBankClient:
    """HTTP client for the Monopoly bank ledger"""

    def __init__(
        self,
        base_url: str = "http://localhost:8090",
        timeout: float = 5.0,
        max_retries: int = 3,
        backoff_seconds: float = 0.2,
        http_client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._client = http_client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        attempt = 0
        while True:
            try:
                return self._send(method, path, json, params)
            except TransientError as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(f"{method} {path} failed ({e.message}); retry {attempt} in {delay:.2f}s")
                time.sleep(delay)

    def _send(self, method: str, path: str, json: Optional[Dict[str, Any]],
              params: Optional[Dict[str, Any]]) -> Any:
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            raise TransientError(f"Could not reach the bank: {e}") from e

        try:
            body = response.json()
        except ValueError:
            if response.status_code >= 500:
                raise TransientError(f"Bank returned {response.status_code}")
            raise LedgerError(f"Unexpected response ({response.status_code}): {response.text[:200]}")

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            error_class = ERROR_TYPES.get(error.get("type"), LedgerError)
            if response.status_code == 503:
                error_class = TransientError
            raise error_class(error.get("message") or "Unknown error")

        return _decode(body.get("data") if isinstance(body, dict) else body)

    # Cash operations

    def add_cash(self, team_id: int, amount: Decimal, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/cash/add", json={
            "team_id": team_id, "amount": str(amount), "idempotency_key": idempotency_key
        })

    def remove_cash(self, team_id: int, amount: Decimal, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/cash/remove", json={
            "team_id": team_id, "amount": str(amount), "idempotency_key": idempotency_key
        })

    def transfer_cash(self, from_team_id: int, to_team_id: int, amount: Decimal,
                      idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/cash/transfer", json={
            "from_team_id": from_team_id,
            "to_team_id": to_team_id,
            "amount": str(amount),
            "idempotency_key": idempotency_key
        })

    # Property operations

    def purchase_property(self, property_name: str, team_id: int) -> Dict[str, Any]:
        return self._request("POST", "/properties/purchase", json={
            "property_name": property_name, "team_id": team_id
        })

    def remove_property_from_team(self, property_name: str, team_id: int) -> Dict[str, Any]:
        return self._request("POST", "/properties/release", json={
            "property_name": property_name, "team_id": team_id
        })

    def get_available_properties(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/properties/available")

    # Teams

    def list_teams(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/teams")

    def get_team(self, team_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/teams/{team_id}")

    def get_team_summary(self, team_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/teams/{team_id}/summary")

    def update_total(self, team_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/teams/{team_id}/update-total")

    def get_team_leaderboard(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/teams/leaderboard")

    def get_team_transactions(self, team_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        return self._request("GET", f"/teams/{team_id}/transactions", params={"limit": limit})

    # Administration

    def create_team(self, team_id: int, team_name: Optional[str] = None,
                    cash: Optional[Decimal] = None) -> Dict[str, Any]:
        return self._request("POST", "/admin/teams", json={
            "team_id": team_id,
            "team_name": team_name,
            "cash": str(cash) if cash is not None else None,
        })

    def add_properties_bulk(self) -> List[Dict[str, Any]]:
        return self._request("POST", "/admin/properties/bulk")

    def edit_team(self, team_id: int, new_team_id: Optional[int] = None,
                  team_name: Optional[str] = None, cash: Optional[Decimal] = None,
                  total_cash: Optional[Decimal] = None) -> Dict[str, Any]:
        payload = {
            "new_team_id": new_team_id,
            "team_name": team_name,
            "cash": str(cash) if cash is not None else None,
            "total_cash": str(total_cash) if total_cash is not None else None,
        }
        return self._request("PUT", f"/admin/teams/{team_id}", json=payload)

    def remove_team(self, team_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/teams/{team_id}")

    def reset_all_tables(self) -> Dict[str, Any]:
        return self._request("POST", "/admin/reset")

    def verify_net_worth(self) -> Dict[str, Any]:
        return self._request("GET", "/admin/integrity")

    def health_check(self) -> bool:
        """Check if the bank API is reachable"""
        try:
            return self._client.get("/health").status_code == 200
        except httpx.HTTPError:
            return False

    def close(self):
        """Close the HTTP client"""
        self._client.close()
