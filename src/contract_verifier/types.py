from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class ChainTarget(Enum):
    # name = (chain id, explorer API endpoint, explorer web root)
    MAINNET = (1, "https://api.etherscan.io/api", "https://etherscan.io")
    ROPSTEN = (3, "https://api-ropsten.etherscan.io/api", "https://ropsten.etherscan.io")
    RINKEBY = (4, "https://api-rinkeby.etherscan.io/api", "https://rinkeby.etherscan.io")
    GOERLI = (5, "https://api-goerli.etherscan.io/api", "https://goerli.etherscan.io")
    KOVAN = (42, "https://api-kovan.etherscan.io/api", "https://kovan.etherscan.io")
    XDAI = (100, "https://blockscout.com/xdai/mainnet/api", "https://blockscout.com/xdai/mainnet")

    def __init__(self, chain_id: int, api_url: str, browser_url: str) -> None:
        self.chain_id = chain_id
        self.api_url = api_url
        self.browser_url = browser_url


@dataclass(frozen=True)
class ContractReference:
    name: str
    path: str | None = None

    @classmethod
    def parse(cls, value: str) -> "ContractReference":
        """Accept `<path>:<name>` or a bare `<name>`."""
        raw = value.strip()
        path, sep, name = raw.rpartition(":")
        if not sep:
            return cls(name=raw)
        if not path or not name:
            raise ValueError(f"Invalid contract reference: {value!r}")
        return cls(name=name, path=path)


@dataclass(frozen=True)
class ByName:
    name: str


@dataclass(frozen=True)
class ByPathAndName:
    path: str
    name: str


LocateBy = Union[ByName, ByPathAndName]


def selector_for(ref: ContractReference) -> LocateBy:
    if ref.path is None:
        return ByName(ref.name)
    return ByPathAndName(ref.path, ref.name)


@dataclass(frozen=True)
class CompiledArtifact:
    qualified_name: str
    abi: list[dict[str, Any]] | None
    bytecode: str | None

    @property
    def source_path(self) -> str:
        return self.qualified_name.rpartition(":")[0]

    @property
    def contract_name(self) -> str:
        return self.qualified_name.rpartition(":")[2]


@dataclass(frozen=True)
class VerificationRequest:
    address: str
    source_path: str
    contract_name: str
    compiler_version: str
    source_code: str
    constructor_args: bytes | None = None
    optimization_used: bool = False
    runs: int = 200

    def to_form(self, api_key: str) -> dict[str, str]:
        form = {
            "apikey": api_key,
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": self.address,
            "sourceCode": self.source_code,
            "codeformat": "solidity-single-file",
            "contractname": self.contract_name,
            "compilerversion": self.compiler_version,
            "optimizationUsed": "1" if self.optimization_used else "0",
            "runs": str(self.runs),
        }
        if self.constructor_args is not None:
            # The misspelling is the explorer API's field name.
            form["constructorArguements"] = self.constructor_args.hex()
        return form


@dataclass(frozen=True)
class VerificationResult:
    status: str
    message: str
    result: Any


@dataclass(frozen=True)
class AlreadyVerified:
    message: str


@dataclass(frozen=True)
class VerificationAccepted:
    message: str
    guid: Any
    url: str


VerifyOutcome = Union[AlreadyVerified, VerificationAccepted]
