from __future__ import annotations

import asyncio

from .errors import ChainQueryError, UnsupportedChain
from .rpc import rpc_chain_id
from .types import ChainTarget

CHAINS_BY_ID: dict[int, ChainTarget] = {target.chain_id: target for target in ChainTarget}


def resolve_chain(chain_id: int) -> ChainTarget:
    try:
        return CHAINS_BY_ID[int(chain_id)]
    except KeyError:
        raise UnsupportedChain(chain_id) from None


async def fetch_chain(rpc_url: str) -> ChainTarget:
    """Read the node's chain id (one round trip) and map it to an explorer target."""
    try:
        chain_id = await asyncio.to_thread(rpc_chain_id, rpc_url)
    except (OSError, RuntimeError, ValueError) as exc:
        raise ChainQueryError(rpc_url, exc) from exc
    return resolve_chain(chain_id)
