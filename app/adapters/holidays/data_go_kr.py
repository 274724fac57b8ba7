"""Korea Astronomy and Space Science Institute special-day API (data.go.kr)."""

from __future__ import annotations

from typing import Any

import httpx

from app.adapters.holidays.base import AbstractHolidayClient
from app.core.errors import UpstreamAppError

SUCCESS_RESULT_CODE = "00"


def _format_locdate(locdate: int | str) -> str:
    raw = str(locdate)
    return f"{raw[:4]}-{raw[4:6]}-{raw[6:8]}"


def parse_holiday_payload(payload: dict[str, Any]) -> dict[str, str]:
    """Extract ``{date: name}`` for rest days from a getRestDeInfo response.

    The API returns ``items`` as an empty string when the month has no
    entries and ``items.item`` as a bare object when it has exactly one.

    Raises:
        UpstreamAppError: If the result code signals an error.
    """
    response = payload.get("response") or {}
    header = response.get("header") or {}
    if header.get("resultCode") != SUCCESS_RESULT_CODE:
        raise UpstreamAppError(
            code="holiday_api_error",
            message=f"Holiday API returned an error: {header.get('resultMsg', 'unknown')}",
        )

    items = (response.get("body") or {}).get("items")
    if not items:
        return {}

    entries = items.get("item") or []
    if isinstance(entries, dict):
        entries = [entries]

    return {
        _format_locdate(entry["locdate"]): entry.get("dateName", "")
        for entry in entries
        if entry.get("isHoliday") == "Y"
    }


class DataGoKrHolidayClient(AbstractHolidayClient):
    """Client for the data.go.kr rest-day lookup using httpx."""

    def __init__(
        self,
        service_key: str,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            service_key: data.go.kr service key.
            base_url: getRestDeInfo endpoint URL.
            timeout_seconds: Timeout for each request in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.service_key = service_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch_month(self, year: int, month: int) -> dict[str, str]:
        params = {
            "serviceKey": self.service_key,
            "solYear": str(year),
            "solMonth": f"{month:02d}",
            "_type": "json",
            "numOfRows": "30",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    self.base_url, params=params, headers={"Accept": "application/json"}
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamAppError(
                code="holiday_api_error",
                message="Holiday API responded with an error status",
                details={"upstream_status": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamAppError(
                code="holiday_api_unavailable",
                message=f"Holiday API request failed: {type(exc).__name__}",
            ) from exc

        try:
            return parse_holiday_payload(payload)
        except (KeyError, TypeError, AttributeError) as exc:
            raise UpstreamAppError(
                code="holiday_api_malformed",
                message=f"Holiday API returned an unexpected payload: {type(exc).__name__}",
            ) from exc
