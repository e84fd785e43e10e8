"""Action-plan API client - httpx wrapper used by draft sessions and the CLI."""

from __future__ import annotations

from typing import Any

import httpx

from ..config import settings
from ..errors import ActionPlanError, error_for_status
from .types import ActionPlanSnapshot, OpportunityContext


class ActionPlanClient:
    """Talks to the tracker's JSON API on behalf of one user.

    Usage:
        async with ActionPlanClient(user_id="u-1") as client:
            opportunity = await client.get_opportunity(opp_id)
            snapshot = await client.save_action_plan(opp_id, payload)
    """

    def __init__(
        self,
        user_id: str,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_id = user_id
        self.base_url = base_url or settings.api_base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                settings.user_header: user_id,
                "Content-Type": "application/json",
            },
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: Any = None,
    ) -> Any:
        """Make an API request, translating failures into ActionPlanError."""
        try:
            response = await self._client.request(method=method, url=path, params=params, json=json)
        except httpx.HTTPError as e:
            raise ActionPlanError(f"Request failed: {e.__class__.__name__}: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            raise error_for_status(response.status_code, detail, response.text)
        return response.json() if response.content else {}

    async def list_opportunities(self, disposition: str | None = None) -> list[dict]:
        params = {"disposition": disposition} if disposition else None
        return await self._request("GET", "/api/opportunities", params=params)

    async def get_opportunity(self, opportunity_id: str) -> OpportunityContext:
        data = await self._request("GET", f"/api/opportunities/{opportunity_id}")
        return OpportunityContext.from_dict(data)

    async def get_action_plan(self, opportunity_id: str) -> ActionPlanSnapshot:
        data = await self._request("GET", f"/api/opportunities/{opportunity_id}/action-plan")
        return ActionPlanSnapshot.from_dict(data)

    async def save_action_plan(self, opportunity_id: str, payload: dict) -> ActionPlanSnapshot:
        data = await self._request(
            "POST", f"/api/opportunities/{opportunity_id}/action-plan", json=payload
        )
        return ActionPlanSnapshot.from_dict(data)

    async def get_history(self, opportunity_id: str) -> list[dict]:
        return await self._request("GET", f"/api/opportunities/{opportunity_id}/history")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return f"HTTP {response.status_code}"
