from __future__ import annotations

from typing import Any, Sequence


class VerifyError(RuntimeError):
    """Base class for every failure the verification pipeline reports."""


class UnsupportedChain(VerifyError):
    def __init__(self, chain_id: int) -> None:
        self.chain_id = chain_id
        super().__init__(f"unexpected chain {chain_id}: no known explorer for this chain id")


class ChainQueryError(VerifyError):
    def __init__(self, rpc_url: str, cause: BaseException) -> None:
        self.rpc_url = rpc_url
        self.cause = cause
        super().__init__(
            f"Could not read chain id from {rpc_url}.\n"
            "Please make sure that you are running a local Ethereum node,\n"
            "or point ETH_RPC_URL / --rpc-url at an external one.\n"
            f"Error: {cause}"
        )


class ProjectError(VerifyError):
    def __init__(self, path: Any, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ArtifactNotFound(VerifyError):
    def __init__(self, name: str, path: str | None = None) -> None:
        self.name = name
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"could not find artifact for contract {name!r}{where}")


class AmbiguousArtifact(VerifyError):
    def __init__(self, name: str, candidates: Sequence[str]) -> None:
        self.name = name
        self.candidates = list(candidates)
        super().__init__(
            f"contract with duplicate name {name!r}, pass the source path "
            f"(candidates: {', '.join(self.candidates)})"
        )


class DuplicateContractInFile(VerifyError):
    def __init__(self, name: str, path: str, count: int) -> None:
        self.name = name
        self.path = path
        self.count = count
        super().__init__(f"duplicate contract name {name!r} in the same source file {path} ({count} artifacts)")


class MissingAbi(VerifyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"abi not found for {name}")


class MissingBytecode(VerifyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"bytecode not found for {name}")


class UnexpectedConstructorArgs(VerifyError):
    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"No constructor found but {count} contract argument(s) provided")


class ArgumentEncodingError(VerifyError):
    def __init__(self, message: str, index: int | None = None) -> None:
        self.message = message
        self.index = index
        prefix = f"argument {index}: " if index is not None else ""
        super().__init__(f"Failed to encode constructor arguments: {prefix}{message}")


class MissingCompilerVersion(VerifyError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"no `pragma solidity` compiler version directive found in {path}")


class SubmissionTransportError(VerifyError):
    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to submit contract verification to {url}: {cause}")


class VerificationRejected(VerifyError):
    def __init__(self, message: str, result: Any) -> None:
        self.message = message
        self.result = result
        super().__init__(
            "Encountered an error verifying this contract:\n"
            f"Response: `{message}`\n"
            f"Details: `{result}`"
        )
