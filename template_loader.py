from __future__ import annotations

import time
from pathlib import Path

import requests

REQUEST_TIMEOUT = (5, 10)
MAX_RETRIES = 3
_ENCODINGS = ("utf-8-sig", "utf-8", "cp1252")


def is_url(source: str) -> bool:
    return source.strip().lower().startswith(("http://", "https://"))


def _sleep_on_rate_limit(response: requests.Response) -> bool:
    if response.status_code != 429:
        return False
    retry_after = int(response.headers.get("Retry-After", "1"))
    time.sleep(max(retry_after, 1))
    return True


def _get_text(session: requests.Session, url: str) -> str | None:
    headers = {"Accept": "text/html, text/plain;q=0.9, */*;q=0.5"}
    for attempt in range(MAX_RETRIES):
        try:
            response = session.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
        except requests.RequestException:
            if attempt == MAX_RETRIES - 1:
                return None
            time.sleep(1 + attempt)
            continue
        if response.status_code == 200:
            return response.text
        if response.status_code in {400, 401, 403, 404}:
            return None
        if _sleep_on_rate_limit(response):
            continue
        if 500 <= response.status_code < 600:
            time.sleep(1 + attempt)
            continue
        return None
    return None


def _decode(raw: bytes, path: Path) -> str:
    for encoding in _ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError(f"Unable to decode template file: {path}")


def load_template(source: str | Path, session: requests.Session | None = None) -> str:
    """Read an HTML template from disk or fetch it from an http(s) URL."""
    if isinstance(source, str) and is_url(source):
        content = _get_text(session or requests.Session(), source.strip())
        if not content or not content.strip():
            raise ValueError(f"Unable to fetch template from {source}")
        return content

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Template file not found: {path}")
    return _decode(path.read_bytes(), path)
