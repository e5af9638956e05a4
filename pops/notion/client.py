"""Paginated Notion database query client using the Notion HTTP API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from pops.exceptions import NotionApiError
from pops.services.datetime_service import format_iso

if TYPE_CHECKING:
    from datetime import datetime
    from types import TracebackType

    from pops.config import Settings

logger = logging.getLogger(__name__)

NotionPage = dict[str, Any]


@dataclass
class QueryPage:
    """One page of a database query response."""

    results: list[NotionPage] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


def build_query_body(
    *,
    page_size: int,
    since: datetime | None = None,
    start_cursor: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body for ``POST /databases/{id}/query``.

    Results are sorted ascending by edit time; with ``since`` only pages
    edited strictly after it are returned.
    """
    body: dict[str, Any] = {
        "page_size": page_size,
        "sorts": [{"timestamp": "last_edited_time", "direction": "ascending"}],
    }
    if since is not None:
        body["filter"] = {
            "timestamp": "last_edited_time",
            "last_edited_time": {"after": format_iso(since)},
        }
    if start_cursor:
        body["start_cursor"] = start_cursor
    return body


class NotionClient:
    """Notion database reader.

    Args:
        token: Integration secret.
        page_delay_seconds: Pause before each follow-up page request, to stay
            under Notion's average of three requests per second.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
        page_size: int = 100,
        page_delay_seconds: float = 0.35,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not (1 <= page_size <= 100):
            msg = f"page_size must be between 1 and 100, got {page_size}"
            raise ValueError(msg)
        self._page_size = page_size
        self._page_delay_seconds = page_delay_seconds
        self._http = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": notion_version,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> NotionClient:
        return cls(
            settings.notion_token,
            api_url=settings.notion_api_url,
            notion_version=settings.notion_version,
            page_size=settings.notion_page_size,
            page_delay_seconds=settings.notion_page_delay_seconds,
            timeout=settings.notion_timeout_seconds,
            transport=transport,
        )

    async def query_database(
        self,
        database_id: str,
        *,
        since: datetime | None = None,
        start_cursor: str | None = None,
    ) -> QueryPage:
        """Fetch a single page of query results.

        Raises:
            NotionApiError: On transport failure, a non-2xx status, or a
                malformed response body.
        """
        body = build_query_body(page_size=self._page_size, since=since, start_cursor=start_cursor)
        try:
            response = await self._http.post(f"/databases/{database_id}/query", json=body)
        except httpx.HTTPError as exc:
            raise NotionApiError(f"Notion query for {database_id} failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotionApiError(
                f"Notion query for {database_id} returned {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise NotionApiError(
                f"Notion query for {database_id} returned invalid JSON",
                status_code=response.status_code,
            ) from exc

        if not isinstance(payload, dict):
            raise NotionApiError(
                f"Notion query for {database_id} returned a non-object body",
                status_code=response.status_code,
            )
        results = payload.get("results")
        if not isinstance(results, list):
            raise NotionApiError(
                f"Notion query for {database_id} returned no results list",
                status_code=response.status_code,
            )
        return QueryPage(
            results=results,
            has_more=bool(payload.get("has_more")),
            next_cursor=payload.get("next_cursor"),
        )

    async def fetch_database_pages(
        self, database_id: str, since: datetime | None = None
    ) -> list[NotionPage]:
        """Fetch every page edited after ``since`` (all pages when None).

        Pages come back in ascending edit order. Any failure discards what was
        fetched so far; a pass is all-or-nothing.
        """
        pages: list[NotionPage] = []
        start_cursor: str | None = None
        request_count = 0
        while True:
            if request_count > 0:
                await asyncio.sleep(self._page_delay_seconds)
            result = await self.query_database(database_id, since=since, start_cursor=start_cursor)
            request_count += 1
            pages.extend(result.results)
            if not result.has_more or not result.next_cursor:
                break
            start_cursor = result.next_cursor

        logger.debug(
            "Fetched %d pages from %s in %d requests", len(pages), database_id, request_count
        )
        return pages

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> NotionClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
