from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .artifacts import DEFAULT_CACHE_FILE, DEFAULT_OUT_DIR, FoundryProject
from .errors import VerifyError
from .types import AlreadyVerified, ContractReference
from .util import is_hex_address, load_api_key, log, rpc_url_from_env
from .verify import verify


def main(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        description="Verify a compiled contract's source on an Etherscan-compatible explorer.",
    )
    p.add_argument("contract", help="Contract source info `<path>:<contractname>` or `<contractname>`.")
    p.add_argument("address", help="Deployed contract address.")
    p.add_argument("args", nargs="*", help="Constructor arguments for the contract.")
    p.add_argument("--root", default=".", help="Project root holding the compilation output.")
    p.add_argument("--out-dir", default=DEFAULT_OUT_DIR, help="Artifacts directory, relative to --root.")
    p.add_argument("--cache-file", default=DEFAULT_CACHE_FILE, help="Compiler files cache, relative to --root.")
    p.add_argument("--rpc-url", default="", help="JSON-RPC URL (default: $ETH_RPC_URL or a local node).")
    p.add_argument("--api-key-path", default="", help="Explorer API key file (default: $ETHERSCAN_API_KEY).")
    p.add_argument(
        "--compiler-version",
        default="",
        help="Exact compiler version for the explorer, e.g. v0.8.10+commit.fc410830 (default: read from the pragma).",
    )
    p.add_argument("--optimize", action="store_true", help="The contract was compiled with the optimizer enabled.")
    p.add_argument("--optimizer-runs", type=int, default=200, help="Optimizer runs used at compile time.")

    args = p.parse_args(argv)

    try:
        contract = ContractReference.parse(args.contract)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if not is_hex_address(args.address):
        raise SystemExit(f"Invalid address: {args.address}")
    if args.optimizer_runs < 0:
        raise SystemExit("--optimizer-runs must be >= 0")

    api_key = load_api_key(Path(args.api_key_path) if args.api_key_path else None)
    rpc_url = args.rpc_url.strip() or rpc_url_from_env()
    project = FoundryProject(args.root, out_dir=args.out_dir, cache_file=args.cache_file)

    try:
        outcome = verify(
            contract,
            args.address,
            args.args,
            project=project,
            rpc_url=rpc_url,
            api_key=api_key,
            compiler_version=args.compiler_version.strip() or None,
            optimization_used=bool(args.optimize),
            runs=int(args.optimizer_runs),
        )
    except VerifyError as exc:
        log(f"[error] {exc}")
        return 1

    if isinstance(outcome, AlreadyVerified):
        print("Contract source code already verified.")
        return 0
    print(
        "Submitted contract for verification:\n"
        f"  Response: `{outcome.message}`\n"
        f"  GUID: `{outcome.guid}`\n"
        f"  url: {outcome.url}"
    )
    return 0


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))
