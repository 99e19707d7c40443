from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from .errors import (
    AmbiguousArtifact,
    ArtifactNotFound,
    DuplicateContractInFile,
    MissingAbi,
    MissingBytecode,
    ProjectError,
)
from .types import ByName, ByPathAndName, CompiledArtifact, LocateBy

DEFAULT_OUT_DIR = "out"
DEFAULT_CACHE_FILE = "cache/solidity-files-cache.json"


class Project(Protocol):
    root: Path

    def artifacts(self) -> dict[str, CompiledArtifact]:
        ...

    def cached_artifacts(self, abs_path: Path) -> list[CompiledArtifact]:
        ...


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ProjectError(path, f"cannot read file ({exc})") from exc
    except ValueError as exc:
        raise ProjectError(path, f"invalid JSON ({exc})") from exc


def _bytecode_object(raw: Any) -> str | None:
    if isinstance(raw, dict):
        raw = raw.get("object")
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    if s in ("", "0x"):
        return None
    return s


def _compilation_target(data: dict[str, Any]) -> tuple[str, str] | None:
    metadata = data.get("metadata")
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            return None
    if not isinstance(metadata, dict):
        return None
    target = (metadata.get("settings") or {}).get("compilationTarget")
    if isinstance(target, dict) and len(target) == 1:
        source, name = next(iter(target.items()))
        return str(source), str(name)
    return None


def _qualified_name(path: Path, data: dict[str, Any]) -> str:
    target = _compilation_target(data)
    if target is not None:
        return f"{target[0]}:{target[1]}"
    # Versioned artifacts are written as `Token.0.8.10.json`.
    name = path.name.split(".", 1)[0]
    ast = data.get("ast")
    if isinstance(ast, dict) and ast.get("absolutePath"):
        return f"{ast['absolutePath']}:{name}"
    return f"{path.parent.name}:{name}"


def read_artifact(path: Path, qualified_name: str | None = None) -> CompiledArtifact:
    data = _load_json(path)
    if not isinstance(data, dict):
        raise ProjectError(path, "artifact is not a JSON object")
    abi = data.get("abi")
    return CompiledArtifact(
        qualified_name=qualified_name or _qualified_name(path, data),
        abi=abi if isinstance(abi, list) else None,
        bytecode=_bytecode_object(data.get("bytecode")),
    )


def _artifact_paths(entry: Any) -> list[str]:
    # Cache entries map version -> "Token.sol/Token.json", or, in newer caches,
    # version -> profile -> {"path": ...}.
    if isinstance(entry, str):
        return [entry]
    if isinstance(entry, dict):
        if isinstance(entry.get("path"), str):
            return [entry["path"]]
        out: list[str] = []
        for value in entry.values():
            out.extend(_artifact_paths(value))
        return out
    return []


class FoundryProject:
    """Compilation output of a Foundry-style project: `out/` artifacts plus the files cache."""

    def __init__(
        self,
        root: str | Path,
        *,
        out_dir: str = DEFAULT_OUT_DIR,
        cache_file: str = DEFAULT_CACHE_FILE,
    ) -> None:
        self.root = Path(root).resolve()
        self.out_dir = self.root / out_dir
        self.cache_path = self.root / cache_file

    def artifacts(self) -> dict[str, CompiledArtifact]:
        if not self.out_dir.is_dir():
            raise ProjectError(self.out_dir, "no compilation output (run the compiler first)")
        out: dict[str, CompiledArtifact] = {}
        for path in sorted(self.out_dir.rglob("*.json")):
            if "build-info" in path.relative_to(self.out_dir).parts:
                continue
            artifact = read_artifact(path)
            out[artifact.qualified_name] = artifact
        return out

    def _source_key(self, files: dict[str, Any], abs_path: Path) -> str | None:
        for key in files:
            candidate = Path(key)
            if not candidate.is_absolute():
                candidate = self.root / candidate
            if candidate.resolve() == abs_path:
                return key
        return None

    def cached_artifacts(self, abs_path: Path) -> list[CompiledArtifact]:
        cache = _load_json(self.cache_path)
        files = cache.get("files") if isinstance(cache, dict) else None
        if not isinstance(files, dict):
            raise ProjectError(self.cache_path, "missing `files` section")
        key = self._source_key(files, abs_path)
        if key is None:
            return []
        record = files[key]
        if not isinstance(record, dict):
            raise ProjectError(self.cache_path, f"malformed cache entry for {key}")
        source_name = str(record.get("sourceName") or key)
        entries = record.get("artifacts") or {}
        if isinstance(entries, list):
            # Older caches list bare contract names; artifacts sit at out/<File>.sol/<Name>.json.
            file_dir = Path(source_name).name
            entries = {str(name): f"{file_dir}/{name}.json" for name in entries}
        if not isinstance(entries, dict):
            raise ProjectError(self.cache_path, f"unsupported cache entry for {key}: artifacts is {type(entries).__name__}")
        out: list[CompiledArtifact] = []
        for name, entry in entries.items():
            for rel in _artifact_paths(entry):
                path = Path(rel)
                if not path.is_absolute():
                    path = self.out_dir / path
                out.append(read_artifact(path, qualified_name=f"{source_name}:{name}"))
        return out


def canonical_source_path(project: Project, path: str) -> Path | None:
    p = Path(path)
    candidates = [p] if p.is_absolute() else [Path.cwd() / p, project.root / p]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    return None


def _checked(artifact: CompiledArtifact) -> CompiledArtifact:
    if artifact.abi is None:
        raise MissingAbi(artifact.contract_name)
    if not artifact.bytecode:
        raise MissingBytecode(artifact.contract_name)
    return artifact


def locate_artifact(project: Project, selector: LocateBy) -> CompiledArtifact:
    """Find exactly one compiled artifact for the selector, or raise why not."""
    if isinstance(selector, ByName):
        matches = [a for a in project.artifacts().values() if a.contract_name == selector.name]
        if not matches:
            raise ArtifactNotFound(selector.name)
        if len(matches) > 1:
            raise AmbiguousArtifact(selector.name, sorted(a.qualified_name for a in matches))
        return _checked(matches[0])

    if isinstance(selector, ByPathAndName):
        abs_path = canonical_source_path(project, selector.path)
        if abs_path is None:
            raise ArtifactNotFound(selector.name, selector.path)
        matches = [a for a in project.cached_artifacts(abs_path) if a.contract_name == selector.name]
        if not matches:
            raise ArtifactNotFound(selector.name, str(abs_path))
        if len(matches) > 1:
            raise DuplicateContractInFile(selector.name, str(abs_path), len(matches))
        return _checked(matches[0])

    raise TypeError(f"Unsupported artifact selector: {selector!r}")


def source_file(project: Project, artifact: CompiledArtifact) -> Path:
    path = Path(artifact.source_path)
    if not path.is_absolute():
        path = project.root / path
    return path
