"""End-to-end tests of the verify pipeline and CLI with the network stubbed out."""

import gc
import logging
import time
import urllib.parse

import eth_abi
import pytest

from conftest import PLAIN_ABI, TOKEN_ABI
from contract_verifier import chains, cli, explorer
from contract_verifier.artifacts import FoundryProject
from contract_verifier.errors import (
    AmbiguousArtifact,
    ArtifactNotFound,
    UnexpectedConstructorArgs,
    UnsupportedChain,
    VerificationRejected,
)
from contract_verifier.types import AlreadyVerified, ContractReference, VerificationAccepted
from contract_verifier.verify import verify

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class FakeExplorer:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, url, fields, timeout_s=60, *, retries=0):
        self.calls.append((url, fields))
        return self.response


@pytest.fixture
def network(monkeypatch):
    def install(chain_id=1, response=None):
        fake = FakeExplorer(response or {"status": "1", "message": "OK", "result": "guid-42"})
        monkeypatch.setattr(chains, "rpc_chain_id", lambda url: chain_id)
        monkeypatch.setattr(explorer, "http_post_form", fake)
        return fake

    return install


def _run(project, ref, args, **kwargs):
    return verify(
        ContractReference.parse(ref),
        ADDRESS,
        args,
        project=project,
        rpc_url="http://node",
        api_key="KEY",
        **kwargs,
    )


def test_token_by_name_accepted(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    fake = network(chain_id=1)

    outcome = _run(FoundryProject(layout.root), "Token", ["100", "hello"])

    assert isinstance(outcome, VerificationAccepted)
    assert outcome.guid == "guid-42"
    assert outcome.url == f"https://etherscan.io/address/{ADDRESS.lower()}#code"
    url, fields = fake.calls[0]
    assert url == "https://api.etherscan.io/api"
    assert fields["compilerversion"] == "v0.8.10"
    assert fields["contractname"] == "Token"
    expected = eth_abi.encode(["uint256", "string"], [100, "hello"]).hex()
    assert fields["constructorArguements"] == expected


def test_by_path_on_testnet(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    fake = network(chain_id=5)
    outcome = _run(FoundryProject(layout.root), "src/Token.sol:Token", ["1", "x"])
    assert outcome.url.startswith("https://goerli.etherscan.io/address/")
    assert fake.calls[0][0] == "https://api-goerli.etherscan.io/api"


def test_already_verified(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    network(response={"status": "0", "message": "Contract source code already verified", "result": ""})
    outcome = _run(FoundryProject(layout.root), "Token", ["100", "hello"])
    assert isinstance(outcome, AlreadyVerified)


def test_rejected(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    network(response={"status": "0", "message": "Unable to locate ContractCode", "result": "0x..."})
    with pytest.raises(VerificationRejected, match="Unable to locate ContractCode"):
        _run(FoundryProject(layout.root), "Token", ["100", "hello"])


def test_unsupported_chain_sends_nothing(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    fake = network(chain_id=999)
    with pytest.raises(UnsupportedChain):
        _run(FoundryProject(layout.root), "Token", ["100", "hello"])
    assert fake.calls == []


def test_lookup_failure_sends_nothing(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    layout.add_artifact("src/legacy/Token.sol", "Token", abi=TOKEN_ABI, filename="Token.legacy.json")
    fake = network()
    with pytest.raises(AmbiguousArtifact):
        _run(FoundryProject(layout.root), "Token", ["100", "hello"])
    assert fake.calls == []


def test_args_for_contract_without_constructor(layout, network):
    layout.add_artifact("src/Plain.sol", "Plain", abi=PLAIN_ABI)
    fake = network()
    with pytest.raises(UnexpectedConstructorArgs):
        _run(FoundryProject(layout.root), "Plain", ["1"])
    assert fake.calls == []


def test_compiler_version_override(layout, network):
    layout.add_artifact("src/Plain.sol", "Plain", abi=PLAIN_ABI)
    fake = network()
    _run(FoundryProject(layout.root), "Plain", [], compiler_version="v0.8.10+commit.fc410830", optimization_used=True)
    fields = fake.calls[0][1]
    assert fields["compilerversion"] == "v0.8.10+commit.fc410830"
    assert fields["optimizationUsed"] == "1"
    assert "constructorArguements" not in fields


def test_cli_success(layout, network, monkeypatch, capsys):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    network()
    monkeypatch.setenv("ETHERSCAN_API_KEY", "KEY")
    rc = cli.main(["Token", ADDRESS, "100", "hello", "--root", str(layout.root), "--rpc-url", "http://node"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "GUID: `guid-42`" in out
    assert "#code" in out


def test_cli_already_verified(layout, network, monkeypatch, capsys):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    network(response={"status": "0", "message": "Contract source code already verified", "result": ""})
    monkeypatch.setenv("ETHERSCAN_API_KEY", "KEY")
    rc = cli.main(["Token", ADDRESS, "100", "hello", "--root", str(layout.root)])
    assert rc == 0
    assert "already verified" in capsys.readouterr().out


def test_cli_reports_failure(layout, network, monkeypatch, capsys):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    network(chain_id=999)
    monkeypatch.setenv("ETHERSCAN_API_KEY", "KEY")
    rc = cli.main(["Token", ADDRESS, "100", "hello", "--root", str(layout.root)])
    assert rc == 1
    assert "[error] unexpected chain 999" in capsys.readouterr().err


def test_cli_rejects_bad_address(layout, monkeypatch):
    monkeypatch.setenv("ETHERSCAN_API_KEY", "KEY")
    with pytest.raises(SystemExit, match="Invalid address"):
        cli.main(["Token", "0x1234", "--root", str(layout.root)])


def test_cli_requires_api_key(layout, monkeypatch):
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
    with pytest.raises(SystemExit, match="Missing API key"):
        cli.main(["Token", ADDRESS, "--root", str(layout.root)])


def test_request_form_is_urlencodable(layout, network):
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    fake = network()
    _run(FoundryProject(layout.root), "Token", ["100", "hello"])
    body = urllib.parse.urlencode(fake.calls[0][1])
    assert "module=contract" in body


class SlowEmptyProject:
    def __init__(self, root):
        self.root = root

    def artifacts(self):
        time.sleep(0.2)
        return {}

    def cached_artifacts(self, abs_path):
        return []


def test_lookup_failure_after_chain_failure_retrieves_both(tmp_path, monkeypatch, caplog):
    def boom(url):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(chains, "rpc_chain_id", boom)
    caplog.set_level(logging.ERROR, logger="asyncio")
    with pytest.raises(ArtifactNotFound):
        _run(SlowEmptyProject(tmp_path), "Token", [])
    gc.collect()
    assert "never retrieved" not in caplog.text


def test_cli_reports_unreadable_source(layout, network, monkeypatch, capsys):
    source = layout.add_source("src/Token.sol")
    layout.add_artifact("src/Token.sol", "Token", abi=TOKEN_ABI)
    source.unlink()
    fake = network()
    monkeypatch.setenv("ETHERSCAN_API_KEY", "KEY")
    rc = cli.main(
        [
            "Token",
            ADDRESS,
            "100",
            "hello",
            "--root",
            str(layout.root),
            "--compiler-version",
            "v0.8.10+commit.fc410830",
        ]
    )
    assert rc == 1
    assert "[error]" in capsys.readouterr().err
    assert fake.calls == []
