"""Shared fixtures: a throwaway Foundry-style project on disk."""

import json
from pathlib import Path

import pytest

TOKEN_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "supply", "type": "uint256", "internalType": "uint256"},
            {"name": "label", "type": "string", "internalType": "string"},
        ],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "totalSupply",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
]

PLAIN_ABI = [
    {
        "type": "function",
        "name": "ping",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    }
]

BYTECODE = "0x6080604052348015600f57600080fd5b50"


class FoundryLayout:
    def __init__(self, root: Path):
        self.root = root
        self.cache = {"_format": "ethers-rs-sol-cache-3", "paths": {}, "files": {}}

    def add_source(self, source: str, pragma: str = "pragma solidity ^0.8.10;") -> Path:
        path = self.root / source
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"// SPDX-License-Identifier: MIT\n{pragma}\n\ncontract X {{}}\n", encoding="utf-8")
        self.cache["files"].setdefault(source, {"sourceName": source, "artifacts": {}})
        return path

    def add_artifact(self, source, name, abi=None, bytecode=BYTECODE, version="0.8.10+commit.fc410830", filename=None):
        if source not in self.cache["files"]:
            self.add_source(source)
        rel = f"{Path(source).name}/{filename or name + '.json'}"
        data = {"metadata": {"settings": {"compilationTarget": {source: name}}}}
        if abi is not None:
            data["abi"] = abi
        if bytecode is not None:
            data["bytecode"] = {"object": bytecode}
        out = self.root / "out" / rel
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(data), encoding="utf-8")
        entry = self.cache["files"][source]["artifacts"].setdefault(name, {})
        entry[version] = rel
        self.write_cache()
        return out

    def write_cache(self):
        path = self.root / "cache" / "solidity-files-cache.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.cache), encoding="utf-8")


@pytest.fixture
def layout(tmp_path):
    return FoundryLayout(tmp_path)
