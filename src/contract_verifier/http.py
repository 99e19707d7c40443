from __future__ import annotations

import json
import random
import ssl
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

USER_AGENT = "contract-verifier/0.1"

_TRANSIENT_HTTP_CODES = (429, 500, 502, 503, 504)


def _sleep_backoff(attempt: int, *, base_s: float = 0.5, max_s: float = 8.0) -> None:
    # Exponential backoff with small jitter.
    delay = min(max_s, base_s * (2**attempt))
    delay *= 1.0 + random.random() * 0.2
    time.sleep(delay)


def _post(url: str, body: bytes, content_type: str, *, timeout_s: int, retries: int) -> Any:
    attempts = max(1, int(retries) + 1)
    last_exc: BaseException | None = None
    for attempt in range(attempts):
        req = urllib.request.Request(
            url,
            data=body,
            headers={
                "User-Agent": USER_AGENT,
                "Content-Type": content_type,
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=timeout_s) as resp:
                raw = resp.read()
            try:
                return json.loads(raw.decode("utf-8"))
            except ValueError as exc:
                last_exc = RuntimeError(f"Failed to decode JSON from {url}: {exc}")
                if attempt + 1 < attempts:
                    _sleep_backoff(attempt)
                    continue
                raise last_exc from exc
        except urllib.error.HTTPError as exc:
            last_exc = exc
            if exc.code in _TRANSIENT_HTTP_CODES and attempt + 1 < attempts:
                retry_after = exc.headers.get("Retry-After")
                if retry_after:
                    try:
                        time.sleep(max(0.0, float(retry_after)))
                        continue
                    except ValueError:
                        pass
                _sleep_backoff(attempt)
                continue
            raise
        except (urllib.error.URLError, TimeoutError, ssl.SSLError, ConnectionResetError) as exc:
            last_exc = exc
            if attempt + 1 < attempts:
                _sleep_backoff(attempt)
                continue
            raise

    if last_exc is not None:
        raise last_exc
    raise RuntimeError("Unexpected POST retry loop exit")


def http_post_json(url: str, payload: dict[str, Any], timeout_s: int = 30, *, retries: int = 3) -> Any:
    body = json.dumps(payload).encode("utf-8")
    return _post(url, body, "application/json", timeout_s=timeout_s, retries=retries)


def http_post_form(url: str, fields: dict[str, str], timeout_s: int = 60, *, retries: int = 0) -> Any:
    """POST url-encoded form fields and decode the JSON reply. No retries unless asked."""
    body = urllib.parse.urlencode(fields).encode("utf-8")
    return _post(url, body, "application/x-www-form-urlencoded", timeout_s=timeout_s, retries=retries)
