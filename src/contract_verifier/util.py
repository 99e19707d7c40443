from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

DEFAULT_RPC_URL = "http://127.0.0.1:8545"


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip()


def load_api_key(api_key_path: Path | None) -> str:
    env_key = os.environ.get("ETHERSCAN_API_KEY")
    if env_key:
        return env_key.strip()
    if api_key_path is None:
        raise SystemExit("Missing API key: set ETHERSCAN_API_KEY or pass --api-key-path")
    if not api_key_path.exists():
        raise SystemExit(f"API key file not found: {api_key_path}")
    key = read_text(api_key_path)
    if not key:
        raise SystemExit(f"API key file is empty: {api_key_path}")
    return key


def rpc_url_from_env() -> str:
    return (os.environ.get("ETH_RPC_URL") or DEFAULT_RPC_URL).strip()


def is_hex_address(value: str) -> bool:
    v = value.strip()
    return len(v) == 42 and v.startswith("0x") and all(c in "0123456789abcdefABCDEF" for c in v[2:])


def normalize_address(addr: str) -> str:
    a = addr.strip()
    if not is_hex_address(a):
        raise ValueError(f"Invalid address: {addr}")
    return a.lower()


def log(msg: str, *, stream: Any = None) -> None:
    print(msg, file=stream if stream is not None else sys.stderr, flush=True)
