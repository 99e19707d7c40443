from __future__ import annotations

import asyncio
import contextlib
from typing import Sequence

from .artifacts import Project, locate_artifact, source_file
from .chains import fetch_chain
from .constructor import encode_constructor_args
from .explorer import ExplorerClient, build_request
from .types import ContractReference, VerificationRequest, VerifyOutcome, selector_for
from .util import log


def prepare_request(
    project: Project,
    contract: ContractReference,
    address: str,
    args: Sequence[str],
    *,
    compiler_version: str | None = None,
    optimization_used: bool = False,
    runs: int = 200,
) -> VerificationRequest:
    log(f"[+] loading compiled artifacts from {project.root}")
    artifact = locate_artifact(project, selector_for(contract))
    log(f"[+] found artifact {artifact.qualified_name}")
    constructor_args = encode_constructor_args(artifact.abi or [], list(args))
    return build_request(
        address=address,
        source_path=source_file(project, artifact),
        contract_name=artifact.contract_name,
        constructor_args=constructor_args,
        compiler_version=compiler_version,
        optimization_used=optimization_used,
        runs=runs,
    )


async def verify_async(
    contract: ContractReference,
    address: str,
    args: Sequence[str],
    *,
    project: Project,
    rpc_url: str,
    api_key: str,
    compiler_version: str | None = None,
    optimization_used: bool = False,
    runs: int = 200,
) -> VerifyOutcome:
    # The chain id query runs while the artifacts are read and encoded.
    chain_task = asyncio.create_task(fetch_chain(rpc_url))
    try:
        request = await asyncio.to_thread(
            prepare_request,
            project,
            contract,
            address,
            args,
            compiler_version=compiler_version,
            optimization_used=optimization_used,
            runs=runs,
        )
    except BaseException:
        chain_task.cancel()
        # Retrieve a chain failure that may already have happened.
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await chain_task
        raise
    chain = await chain_task
    log(f"[+] chain {chain.chain_id} -> {chain.name.lower()} ({chain.api_url})")

    client = ExplorerClient(chain, api_key)
    log(f"[+] submitting {request.contract_name} at {request.address} (compiler {request.compiler_version})")
    return await client.verify(request)


def verify(
    contract: ContractReference,
    address: str,
    args: Sequence[str],
    *,
    project: Project,
    rpc_url: str,
    api_key: str,
    compiler_version: str | None = None,
    optimization_used: bool = False,
    runs: int = 200,
) -> VerifyOutcome:
    """Run one resolve-locate-encode-submit pass on its own event loop."""
    return asyncio.run(
        verify_async(
            contract,
            address,
            args,
            project=project,
            rpc_url=rpc_url,
            api_key=api_key,
            compiler_version=compiler_version,
            optimization_used=optimization_used,
            runs=runs,
        )
    )
