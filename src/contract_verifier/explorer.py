from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from .errors import MissingCompilerVersion, ProjectError, SubmissionTransportError, VerificationRejected
from .http import http_post_form
from .types import (
    AlreadyVerified,
    ChainTarget,
    VerificationAccepted,
    VerificationRequest,
    VerificationResult,
    VerifyOutcome,
)
from .util import normalize_address

PRAGMA_DIRECTIVE = "pragma solidity"
ALREADY_VERIFIED = "already verified"
_RANGE_PREFIXES = (">=", "<=", "^", "~", ">", "<", "=")


def _read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def compiler_version_from_source(source: str, path: str | Path) -> str:
    """
    Return the version token of the first `pragma solidity` line, e.g. `0.8.10`
    for `pragma solidity ^0.8.10;`.
    """
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped.startswith(PRAGMA_DIRECTIVE):
            continue
        parts = stripped.split()
        if len(parts) < 3:
            break
        token = parts[2].rstrip(";")
        for prefix in _RANGE_PREFIXES:
            if token.startswith(prefix):
                token = token[len(prefix):]
                break
        if token:
            return token
        break
    raise MissingCompilerVersion(str(path))


def read_compiler_version(source_path: str | Path) -> str:
    path = Path(source_path)
    try:
        source = _read_source(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise MissingCompilerVersion(f"{path} ({exc})") from exc
    return compiler_version_from_source(source, path)


def explorer_compiler_version(version: str) -> str:
    return version if version.startswith("v") else f"v{version}"


def build_request(
    *,
    address: str,
    source_path: str | Path,
    contract_name: str,
    constructor_args: bytes | None,
    compiler_version: str | None = None,
    optimization_used: bool = False,
    runs: int = 200,
) -> VerificationRequest:
    path = Path(source_path)
    try:
        source = _read_source(path)
    except (OSError, UnicodeDecodeError) as exc:
        if compiler_version:
            raise ProjectError(path, f"cannot read contract source ({exc})") from exc
        raise MissingCompilerVersion(f"{path} ({exc})") from exc
    version = compiler_version or explorer_compiler_version(compiler_version_from_source(source, path))
    return VerificationRequest(
        address=normalize_address(address),
        source_path=str(path),
        contract_name=contract_name,
        compiler_version=version,
        source_code=source,
        constructor_args=constructor_args,
        optimization_used=optimization_used,
        runs=runs,
    )


def parse_response(url: str, data: Any) -> VerificationResult:
    if not isinstance(data, dict) or "status" not in data:
        raise SubmissionTransportError(url, f"Unexpected verifysourcecode response: {data!r}")
    return VerificationResult(
        status=str(data.get("status") or "").strip(),
        message=str(data.get("message") or "").strip(),
        result=data.get("result"),
    )


def classify_response(result: VerificationResult, address_url: str) -> VerifyOutcome:
    if result.status == "1":
        return VerificationAccepted(message=result.message, guid=result.result, url=f"{address_url}#code")
    # Etherscan puts the reason in `message`; some deployments answer NOTOK and
    # carry it in `result` instead.
    if ALREADY_VERIFIED in result.message.lower():
        return AlreadyVerified(message=result.message)
    if isinstance(result.result, str) and ALREADY_VERIFIED in result.result.lower():
        return AlreadyVerified(message=result.result)
    raise VerificationRejected(result.message, result.result)


class ExplorerClient:
    def __init__(self, chain: ChainTarget, api_key: str) -> None:
        self.chain = chain
        self.api_key = api_key

    def address_url(self, address: str) -> str:
        return f"{self.chain.browser_url}/address/{address}"

    async def submit(self, request: VerificationRequest) -> VerificationResult:
        """Send the request once. Transport and decoding failures are not retried."""
        form = request.to_form(self.api_key)
        try:
            data = await asyncio.to_thread(http_post_form, self.chain.api_url, form, retries=0)
        except (OSError, RuntimeError) as exc:
            raise SubmissionTransportError(self.chain.api_url, exc) from exc
        return parse_response(self.chain.api_url, data)

    async def verify(self, request: VerificationRequest) -> VerifyOutcome:
        result = await self.submit(request)
        return classify_response(result, self.address_url(request.address))
