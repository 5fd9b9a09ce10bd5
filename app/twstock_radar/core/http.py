from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json,text/plain,*/*",
    "Accept-Language": "zh-TW,zh;q=0.9,en-US;q=0.8,en;q=0.7",
}


def looks_like_html(text: str) -> bool:
    head = text.lstrip()[:15].lower()
    return head.startswith("<!doctype") or head.startswith("<html")


class FetchClient:
    """GET-with-retry wrapper; returns None instead of raising on failure."""

    def __init__(
        self,
        timeout_sec: float = 15.0,
        max_attempts: int = 3,
        retry_delay_sec: float = 1.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.max_attempts = max_attempts
        self.retry_delay_sec = retry_delay_sec
        self.sleep = sleep
        # An injected session is shared; otherwise one session per thread.
        self._shared_session = session
        if session is not None:
            session.headers.update(DEFAULT_HEADERS)
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(DEFAULT_HEADERS)
            self._local.session = session
        return session

    def fetch_json(
        self,
        url: str,
        max_attempts: int | None = None,
        retry_delay_sec: float | None = None,
    ) -> Any | None:
        attempts = max(1, max_attempts or self.max_attempts)
        delay = self.retry_delay_sec if retry_delay_sec is None else retry_delay_sec

        for attempt in range(1, attempts + 1):
            try:
                resp = self.session.get(url, timeout=self.timeout_sec)
                if resp.ok:
                    return self._parse_body(url, resp.text)
                logger.warning("HTTP %s for %s (attempt %d/%d)", resp.status_code, url, attempt, attempts)
            except requests.RequestException as exc:
                logger.warning("Request error for %s: %s (attempt %d/%d)", url, exc, attempt, attempts)

            if attempt < attempts:
                self.sleep(delay)

        return None

    @staticmethod
    def _parse_body(url: str, text: str) -> Any | None:
        if looks_like_html(text):
            logger.warning("Got an HTML page instead of JSON: %s", url)
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            logger.warning("JSON parse failed for %s: %s", url, exc)
            return None
