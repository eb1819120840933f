"""Counterparty background checks through the Tavily search API.

API docs: https://docs.tavily.com/documentation/api-reference/endpoint/search
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from contract_health.core.config import settings
from contract_health.core.errors import BackgroundCheckError

logger = logging.getLogger(__name__)

# company_data key -> query template. {company} is the counterparty name,
# {person} the responsible person (falls back to the company).
QUERY_TEMPLATES: dict[str, str] = {
    "profile": "{company} company profile business overview",
    "customs": "{company} customs import export records",
    "legal": "{company} legal compliance litigation",
    "responsible_person": "{person} {company} responsible person director",
    "responsible_person_legal": "{person} lawsuit legal dispute",
}


class BackgroundChecker(Protocol):
    async def run(self, company: str, responsible_person: str | None = None) -> dict[str, Any]: ...


def build_queries(company: str, responsible_person: str | None = None) -> dict[str, str]:
    person = (responsible_person or "").strip() or company
    return {key: template.format(company=company, person=person) for key, template in QUERY_TEMPLATES.items()}


class TavilyBackgroundChecker:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_results: int | None = None,
        timeout_s: float | None = None,
    ):
        self._api_key = (api_key if api_key is not None else settings.tavily_api_key or "").strip()
        self._base_url = (base_url or settings.tavily_base_url).rstrip("/")
        self._max_results = max_results or settings.search_max_results
        self._timeout_s = timeout_s or settings.search_timeout_s

    async def _search(self, client: httpx.AsyncClient, key: str, query: str) -> dict[str, Any]:
        try:
            response = await client.post(
                f"{self._base_url}/search",
                json={"query": query, "max_results": self._max_results},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("background_check_failed query=%s: %s", key, exc)
            raise BackgroundCheckError(f"Background check '{key}' failed: {exc}", query=key) from exc
        if not isinstance(data, dict):
            raise BackgroundCheckError(f"Background check '{key}' returned a non-object payload.", query=key)
        return data

    async def run(self, company: str, responsible_person: str | None = None) -> dict[str, Any]:
        if not self._api_key:
            raise BackgroundCheckError("Background checks are not configured (TAVILY_API_KEY).")

        queries = build_queries(company, responsible_person)
        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_s, connect=10.0)) as client:
            results = await asyncio.gather(
                *(self._search(client, key, query) for key, query in queries.items()),
                return_exceptions=True,
            )
        # Every query has settled here; report the first failure in query order.
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.info("background_check_completed company=%s queries=%s", company, len(queries))
        return dict(zip(queries.keys(), results))
