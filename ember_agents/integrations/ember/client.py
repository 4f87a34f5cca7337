from __future__ import annotations

import uuid
from typing import Any, Dict, List

import httpx

from .config import EmberGatewaySettings, get_ember_settings


class EmberGatewayError(RuntimeError):
    """Raised when the planning service returns an error response."""

    def __init__(self, message: str, status_code: int, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class EmberGatewayClient:
    """Async HTTP client wrapper for the transaction-planning service."""

    def __init__(
        self,
        settings: EmberGatewaySettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_ember_settings()
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout,
        )

    async def __aenter__(self) -> "EmberGatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ---- low-level helpers -------------------------------------------------
    def _default_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "x-service-name": self._settings.service_name,
        }
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        headers = self._default_headers()
        if method.upper() == "POST":
            headers["Idempotency-Key"] = str(uuid.uuid4())

        response = await self._client.request(
            method=method,
            url=path,
            headers=headers,
            params=params,
            json=json_body,
        )

        if response.status_code >= 400:
            message = f"Planning service request failed ({response.status_code})"
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise EmberGatewayError(message, response.status_code, payload)

        if response.status_code == 204:
            return None
        return response.json()

    # ---- lending facades ---------------------------------------------------
    async def get_lending_catalog(self) -> Dict[str, List[str]]:
        """Return the lendable token names mapped to the chains that list them."""

        data = await self._request("GET", "/v1/lending/catalog")
        catalog: Dict[str, List[str]] = {}
        for entry in (data or {}).get("tokens", []):
            if not isinstance(entry, dict):
                continue
            name = (entry.get("name") or "").strip()
            if not name:
                continue
            chains = [str(chain).strip() for chain in entry.get("chains") or [] if str(chain).strip()]
            catalog.setdefault(name, [])
            for chain in chains:
                if chain not in catalog[name]:
                    catalog[name].append(chain)
        return catalog

    async def plan_lending_action(self, path: str, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Request the transaction plan for one lending action."""

        data = await self._request("POST", path, json_body=body)
        transactions = (data or {}).get("transactions", [])
        return [tx for tx in transactions if isinstance(tx, dict)]
