"""Remote transport for prebuilt artifacts.

Two operations: a full GET returning parsed JSON, and a header-only HEAD
probe reporting the artifact's modification time. HTTP(S) locations go
through httpx; ``file://`` URLs and bare paths are read from disk, which is
how freshly generated artifacts are served during development.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import unquote, urlparse

import aiofiles
import aiofiles.os
import httpx
from loguru import logger

from ..core.exceptions import NetworkFailure, ParseFailure


@dataclass(slots=True)
class ProbeResult:
    """Outcome of a freshness probe."""

    ok: bool
    status: int | None = None
    last_modified: datetime | None = None


class Transport(Protocol):
    async def fetch_json(self, location: str) -> Any:
        """Fetch and parse a JSON document. Raises NetworkFailure or ParseFailure."""
        ...

    async def probe(self, location: str) -> ProbeResult:
        """Header-only request. Raises NetworkFailure if the request itself fails."""
        ...


def parse_http_date(value: str | None) -> datetime | None:
    """Parse a ``Last-Modified`` header into an aware datetime, or None."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _local_path(location: str) -> Path | None:
    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        return None
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(location).expanduser()


class HttpTransport:
    """httpx-backed transport.

    A fresh ``AsyncClient`` is opened per request unless ``client`` is given.
    ``transport`` is passed through to httpx (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._client = client
        self._transport = transport

    async def _request(self, method: str, url: str) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.request(method, url, headers=self.headers)
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport, follow_redirects=True
            ) as client:
                return await client.request(method, url, headers=self.headers)
        except httpx.HTTPError as e:
            raise NetworkFailure(url, f"{type(e).__name__}: {e}") from e

    async def fetch_json(self, location: str) -> Any:
        path = _local_path(location)
        if path is not None:
            return await self._read_file(path, location)

        resp = await self._request("GET", location)
        if not resp.is_success:
            raise NetworkFailure(location, f"HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise ParseFailure(location, f"invalid JSON: {e}") from e

    async def probe(self, location: str) -> ProbeResult:
        path = _local_path(location)
        if path is not None:
            try:
                stat = await aiofiles.os.stat(path)
            except OSError as e:
                raise NetworkFailure(location, str(e)) from e
            return ProbeResult(ok=True, last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc))

        resp = await self._request("HEAD", location)
        logger.debug(f"Probe {location}: HTTP {resp.status_code}")
        return ProbeResult(
            ok=resp.is_success,
            status=resp.status_code,
            last_modified=parse_http_date(resp.headers.get("Last-Modified")),
        )

    @staticmethod
    async def _read_file(path: Path, location: str) -> Any:
        try:
            async with aiofiles.open(path, "rb") as f:
                raw = await f.read()
        except OSError as e:
            raise NetworkFailure(location, str(e)) from e
        try:
            return json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseFailure(location, f"invalid JSON: {e}") from e
