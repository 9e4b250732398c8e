from __future__ import annotations
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol

import requests
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from . import canon, exceptions

logger = logging.getLogger(__name__)

ENV_ENDPOINT_URL = "SOLARUSAGE_ENDPOINT_URL"
ENV_API_KEY = "SOLARUSAGE_API_KEY"


class ClientSettings(BaseModel):
    """Vendor endpoint and API token."""

    endpoint_url: str
    api_key: str


def settings_from_env(env_file: Optional[str] = None) -> ClientSettings:
    """Load settings from the environment (and an optional .env file)."""
    load_dotenv(env_file)
    endpoint_url = os.getenv(ENV_ENDPOINT_URL, "").strip()
    api_key = os.getenv(ENV_API_KEY, "").strip()
    exceptions.require(
        bool(endpoint_url), f"{ENV_ENDPOINT_URL} is not set.", exceptions.ConfigError
    )
    exceptions.require(bool(api_key), f"{ENV_API_KEY} is not set.", exceptions.ConfigError)
    return ClientSettings(endpoint_url=endpoint_url, api_key=api_key)


class UsageQuery(BaseModel):
    """Request body for the usage endpoint.

    Attributes:
        deviceUuid: Device identifier
        scopes: Channels to retrieve
        startTime: Range start (epoch ms)
        endTime: Range end (epoch ms)
        next: Pagination cursor from the previous response, if any
    """

    deviceUuid: str
    scopes: List[str] = Field(default_factory=lambda: list(canon.CHANNELS))
    startTime: int
    endTime: int
    next: Optional[Any] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RequestLog(BaseModel):
    """One request/response exchange; the API token is always masked."""

    timestamp: int  # epoch ms
    url: str
    method: str = "POST"
    headers: Dict[str, str]
    body: Any = None
    response: Any = None
    status: Optional[int] = None
    error: Optional[str] = None


class RequestLogStore(Protocol):
    def append(self, log: RequestLog) -> None: ...

    def all(self) -> List[RequestLog]: ...

    def clear(self) -> None: ...


class MemoryRequestLogStore:
    def __init__(self) -> None:
        self._logs: List[RequestLog] = []

    def append(self, log: RequestLog) -> None:
        self._logs.append(log)

    def all(self) -> List[RequestLog]:
        return list(self._logs)

    def clear(self) -> None:
        self._logs.clear()


class JsonRequestLogStore:
    """Request logs kept as JSON lines in a file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def append(self, log: RequestLog) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(log.model_dump_json() + "\n")

    def all(self) -> List[RequestLog]:
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as f:
            return [RequestLog.model_validate_json(line) for line in f if line.strip()]

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def _now_ms() -> int:
    return int(time.time() * 1000)


class TelemetryClient:
    """
    Thin client for the vendor usage endpoint.

    Every attempt is recorded in the injected RequestLogStore. Failures raise
    ClientError; nothing is retried.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        store: Optional[RequestLogStore] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self.store = store
        self.session = session or requests.Session()
        self.timeout = timeout

    def _record(self, log: RequestLog) -> None:
        if self.store is not None:
            self.store.append(log)

    def post(self, body: Dict[str, Any]) -> Any:
        url = self.settings.endpoint_url
        log = RequestLog(
            timestamp=_now_ms(),
            url=url,
            headers={
                "Content-Type": "application/json",
                canon.TOKEN_HEADER: canon.MASKED_TOKEN,
            },
            body=body,
        )
        headers = {
            "Content-Type": "application/json",
            canon.TOKEN_HEADER: self.settings.api_key,
        }
        logger.debug("POST %s body=%s", url, body)

        try:
            resp = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log.error = f"API request failed: {e}"
            self._record(log)
            raise exceptions.ClientError(log.error) from e

        log.status = resp.status_code
        if not resp.ok:
            log.error = f"API request failed with status {resp.status_code}"
            self._record(log)
            logger.error(log.error)
            raise exceptions.ClientError(log.error)

        try:
            data = resp.json()
        except ValueError as e:
            log.error = "API response is not valid JSON"
            self._record(log)
            raise exceptions.ClientError(log.error) from e

        log.response = data
        self._record(log)
        return data

    def fetch(self, query: UsageQuery) -> Any:
        return self.post(query.to_body())

    def iter_pages(self, query: UsageQuery, *, delay: float = 0.5) -> Iterator[Any]:
        """
        Yield responses, re-posting with each response's 'next' cursor.

        The original start/end times are kept for every request; iteration
        stops once 'next' is missing or null.
        """
        current = query
        count = 0
        while True:
            page = self.fetch(current)
            count += 1
            yield page
            cursor = page.get("next") if isinstance(page, dict) else None
            if cursor is None:
                logger.info("Retrieval finished after %d requests", count)
                return
            logger.info("Page %d returned next=%s", count, cursor)
            current = query.model_copy(update={"next": cursor})
            if delay > 0:
                time.sleep(delay)

    def download_pages(
        self,
        query: UsageQuery,
        out_dir: str | Path,
        *,
        start_seq: int = 1,
        delay: float = 0.5,
    ) -> List[Path]:
        """Save every page as '<deviceUuid>___<NNN>.json', numbered from start_seq."""
        out = Path(out_dir)
        out.mkdir(parents=True, exist_ok=True)
        written: List[Path] = []
        for i, page in enumerate(self.iter_pages(query, delay=delay)):
            target = out / canon.PAGE_FILE_TEMPLATE.format(
                device=query.deviceUuid, seq=start_seq + i
            )
            target.write_text(
                json.dumps(page, indent=2, ensure_ascii=False), encoding="utf-8"
            )
            written.append(target)
        return written
