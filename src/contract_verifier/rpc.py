from __future__ import annotations

import random
import time
from typing import Any

from .http import http_post_json


def _sleep_backoff(attempt: int, *, base_s: float = 0.5, max_s: float = 8.0) -> None:
    delay = min(max_s, base_s * (2**attempt))
    delay *= 1.0 + random.random() * 0.2
    time.sleep(delay)


def _is_transient_rpc_error(error_obj: Any) -> bool:
    if isinstance(error_obj, dict):
        code = error_obj.get("code")
        msg = str(error_obj.get("message") or "").lower()
        # Common transient JSON-RPC provider codes/messages.
        if code in (-32005, -32603):
            return True
        return any(
            k in msg
            for k in (
                "rate limit",
                "too many requests",
                "timeout",
                "timed out",
                "temporarily unavailable",
                "service unavailable",
                "try again",
                "busy",
            )
        )
    return False


def rpc_call(rpc_url: str, method: str, params: list[Any], *, retries: int = 3) -> Any:
    payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
    attempts = max(1, int(retries) + 1)
    for attempt in range(attempts):
        # http.py already retries network errors; this loop covers providers that
        # answer with a valid JSON-RPC error for transient conditions.
        resp = http_post_json(rpc_url, payload, retries=retries)
        if not isinstance(resp, dict):
            raise RuntimeError(f"Unexpected RPC response: {resp!r}")
        err = resp.get("error")
        if err:
            if _is_transient_rpc_error(err) and attempt + 1 < attempts:
                _sleep_backoff(attempt)
                continue
            raise RuntimeError(f"RPC error for {method}: {err!r}")
        return resp.get("result")
    raise RuntimeError("Unexpected rpc_call retry loop exit")


def rpc_chain_id(rpc_url: str) -> int:
    res = rpc_call(rpc_url, "eth_chainId", [])
    if not isinstance(res, str) or not res.startswith("0x"):
        raise RuntimeError(f"Unexpected eth_chainId result: {res!r}")
    return int(res, 16)
