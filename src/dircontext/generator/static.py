"""
dircontext: static build action

Purpose
- Produce artifact content from the filesystem alone (no network, no model).

Functional requirements
- ``scope``, ``summary`` and ``maintenance`` are always present.
- ``subdirectories`` reuse each child's artifact summary when one is available.
- The root additionally gets ``project`` metadata and a ``structure`` listing.
- ``mode="full"`` adds per-file ``files`` entries and exported ``interfaces``.
- With ``evidence=True`` the root also gets ``evidence`` read from existing test
  result files.
- ``derived_fields`` names every field that was computed rather than authored.
"""

from __future__ import annotations

import asyncio
import json
import re
import tomllib
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any, Final

import structlog

from dircontext.core.scanner import Target
from dircontext.core.schema import DEFAULT_MAINTENANCE, FULL_MAINTENANCE
from dircontext.generator.base import ArtifactContent, BuildRequest
from dircontext.generator.evidence import collect_basic_evidence
from dircontext.generator.signatures import SignatureExtractor

logger = structlog.get_logger(__name__)

BUILD_MODES: Final[tuple[str, ...]] = ("lean", "full")

MAX_EXTERNAL_DEPS: Final[int] = 30
MAX_INTERFACES: Final[int] = 15
MAX_INTERFACES_PER_FILE: Final[int] = 5
MAX_PURPOSE_EXPORTS: Final[int] = 3

_KNOWN_PURPOSES: Final[dict[str, str]] = {
    "package.json": "Node.js project configuration and dependencies",
    "tsconfig.json": "TypeScript compiler configuration",
    "pyproject.toml": "Python project configuration",
    "setup.py": "Python packaging script",
    "setup.cfg": "Python packaging configuration",
    "requirements.txt": "Python dependency pins",
    "Cargo.toml": "Rust project configuration",
    "go.mod": "Go module definition",
    "Dockerfile": "Container build configuration",
    "docker-compose.yaml": "Multi-container orchestration",
    "docker-compose.yml": "Multi-container orchestration",
    "Makefile": "Build automation rules",
    "README.md": "Project documentation",
}

_SUFFIX_PURPOSES: Final[dict[str, str]] = {
    ".ts": "TypeScript source file",
    ".tsx": "TypeScript React component",
    ".js": "JavaScript source file",
    ".jsx": "JavaScript React component",
    ".py": "Python source file",
    ".pyi": "Python type stub",
    ".rs": "Rust source file",
    ".go": "Go source file",
    ".css": "Stylesheet",
    ".scss": "SASS stylesheet",
    ".html": "HTML template",
    ".sql": "SQL queries",
    ".sh": "Shell script",
    ".yaml": "YAML configuration",
    ".yml": "YAML configuration",
    ".json": "JSON data/configuration",
    ".toml": "TOML configuration",
    ".md": "Documentation",
}

_TEST_NAME = re.compile(r"(?:\.(?:test|spec)\.\w+$)|(?:^test_.+\.py$)|(?:_test\.(?:py|go)$)")
_DOC_LINE = re.compile(r'^\s*(?:/\*\*|"""|\'\'\'|///|//!)\s*(.*)$')
_REQUIREMENT = re.compile(r"^([A-Za-z0-9_.\-]+)\s*(\[[^\]]*\])?\s*([<>=!~].*)?$")
_GO_REQUIRE_BLOCK = re.compile(r"require\s*\(\n(.*?)\)", re.DOTALL)
_GO_REQUIRE_LINE = re.compile(r"^require\s+(\S+)\s+(\S+)", re.MULTILINE)
_GO_MODULE = re.compile(r"^module\s+(\S+)", re.MULTILINE)

_FRAMEWORKS: Final[tuple[tuple[str, str], ...]] = (
    ("next", "next"),
    ("nuxt", "nuxt"),
    ("@sveltejs/kit", "sveltekit"),
    ("express", "express"),
    ("fastify", "fastify"),
    ("react", "react"),
    ("vue", "vue"),
    ("svelte", "svelte"),
    ("@angular/core", "angular"),
)


class StaticBuildAction:
    """Heuristic build action driven by directory listings and manifests."""

    def __init__(
        self,
        mode: str = "lean",
        extractor: SignatureExtractor | None = None,
        *,
        evidence: bool = False,
    ) -> None:
        if mode not in BUILD_MODES:
            raise ValueError(f"mode must be one of {', '.join(BUILD_MODES)}")
        self._mode = mode
        self._extractor = extractor if extractor is not None else SignatureExtractor()
        self._evidence = evidence

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def evidence(self) -> bool:
        return self._evidence

    @property
    def extractor(self) -> SignatureExtractor:
        return self._extractor

    async def build(self, request: BuildRequest) -> ArtifactContent:
        return await asyncio.to_thread(self.build_sync, request)

    def build_sync(self, request: BuildRequest) -> dict[str, Any]:
        target = request.target
        full = self._mode == "full"

        content: dict[str, Any] = {
            "scope": target.relative_id,
            "summary": _summary(target),
            "maintenance": FULL_MAINTENANCE if full else DEFAULT_MAINTENANCE,
        }
        derived = ["version", "last_updated", "fingerprint", "scope"]

        if full:
            content["files"] = [self._file_entry(request, name) for name in target.direct_files]
            derived.append("files")
            interfaces = self._interfaces(request)
            if interfaces:
                content["interfaces"] = interfaces
                content["exports"] = sorted({item["name"] for item in interfaces})
                derived.extend(["interfaces", "exports"])

        external = _external_dependencies(request)
        if external:
            content["dependencies"] = {"external": external}
            derived.append("dependencies.external")

        child_summaries = [
            (child, _child_summary(child, request.child_artifacts)) for child in target.children
        ]
        if child_summaries:
            content["subdirectories"] = [
                {"name": f"{child.name}/", "summary": summary} for child, summary in child_summaries
            ]
            derived.append("subdirectories")

        if target.is_root:
            content["project"] = _project_metadata(request)
            content["structure"] = [
                {"path": child.relative_id, "summary": summary}
                for child, summary in child_summaries
            ]
            derived.extend(["project", "structure"])
            if self._evidence:
                evidence = collect_basic_evidence(target.absolute_path)
                if evidence is not None:
                    content["evidence"] = evidence
                    derived.append("evidence")

        content["derived_fields"] = derived
        return content

    def _file_entry(self, request: BuildRequest, filename: str) -> dict[str, str]:
        entry = {"name": filename, "purpose": self._file_purpose(request, filename)}
        test_file = _find_test_file(request.target, filename)
        if test_file is not None:
            entry["test_file"] = test_file
        return entry

    def _file_purpose(self, request: BuildRequest, filename: str) -> str:
        known = _KNOWN_PURPOSES.get(filename)
        if known is not None:
            return known

        suffix = PurePosixPath(filename).suffix.lower()
        if _TEST_NAME.search(filename):
            return "Test file"
        if self._extractor.supports(suffix):
            text = _read_or_none(request, filename)
            if text is not None:
                doc = _leading_doc_line(text)
                if doc:
                    return doc
                names = [sig.name for sig in self._extractor.extract(text, suffix)]
                if names:
                    shown = ", ".join(names[:MAX_PURPOSE_EXPORTS])
                    extra = len(names) - MAX_PURPOSE_EXPORTS
                    return f"Exports: {shown}" + (f" (+{extra} more)" if extra > 0 else "")
        return _SUFFIX_PURPOSES.get(suffix, "Source file")

    def _interfaces(self, request: BuildRequest) -> list[dict[str, str]]:
        interfaces: list[dict[str, str]] = []
        for filename in request.files:
            suffix = PurePosixPath(filename).suffix.lower()
            if not self._extractor.supports(suffix):
                continue
            text = _read_or_none(request, filename)
            if text is None:
                continue
            for signature in self._extractor.extract(text, suffix)[:MAX_INTERFACES_PER_FILE]:
                interfaces.append(
                    {"name": signature.name, "description": f"{signature.text} in {filename}"}
                )
        return interfaces[:MAX_INTERFACES]


def _summary(target: Target) -> str:
    file_count = len(target.direct_files)
    child_count = len(target.children)
    if target.is_root:
        return (
            f"Project root containing {file_count} files and {child_count} subdirectories. "
            "Generated with static analysis."
        )
    tail = f" and {child_count} subdirectories" if child_count else ""
    return (
        f"Directory {target.relative_id} containing {file_count} files{tail}. "
        "Generated with static analysis."
    )


def _child_summary(child: Target, child_artifacts: Mapping[str, Any]) -> str:
    artifact = child_artifacts.get(child.relative_id)
    summary = getattr(artifact, "summary", None)
    if summary:
        return summary
    return f"Contains {len(child.direct_files)} source files"


def _read_or_none(request: BuildRequest, filename: str) -> str | None:
    try:
        return request.read_file(filename)
    except OSError as exc:
        logger.info(
            "static_file_unreadable",
            target_id=request.target.relative_id,
            file=filename,
            error=str(exc),
        )
        return None


def _leading_doc_line(text: str) -> str | None:
    for line in text.splitlines()[:10]:
        match = _DOC_LINE.match(line)
        if match is None:
            continue
        candidate = match.group(1)
        for marker in ('"""', "'''", "*/"):
            candidate = candidate.replace(marker, "")
        candidate = candidate.strip()
        return candidate or None
    return None


def _find_test_file(target: Target, filename: str) -> str | None:
    if _TEST_NAME.search(filename):
        return None
    path = PurePosixPath(filename)
    stem, suffix = path.stem, path.suffix
    candidates = [f"{stem}.test{suffix}", f"{stem}.spec{suffix}"]
    if suffix == ".py":
        candidates.append(f"test_{stem}.py")
    if suffix == ".go":
        candidates.append(f"{stem}_test.go")

    for candidate in candidates:
        if candidate in target.direct_files:
            return candidate
    for child in target.children:
        if child.name not in {"tests", "__tests__", "test"}:
            continue
        for candidate in [*candidates, filename]:
            if candidate in child.direct_files:
                return f"{child.name}/{candidate}"
    return None


def _load_toml(request: BuildRequest, filename: str) -> dict[str, Any] | None:
    if filename not in request.files:
        return None
    text = _read_or_none(request, filename)
    if text is None:
        return None
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        logger.info("static_manifest_invalid", file=filename, error=str(exc))
        return None


def _load_package_json(request: BuildRequest) -> dict[str, Any] | None:
    if "package.json" not in request.files:
        return None
    text = _read_or_none(request, "package.json")
    if text is None:
        return None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.info("static_manifest_invalid", file="package.json", error=str(exc))
        return None
    return payload if isinstance(payload, dict) else None


def _external_dependencies(request: BuildRequest) -> list[str]:
    """Read the first manifest present: package.json, requirements.txt,
    pyproject.toml, Cargo.toml, go.mod."""

    package = _load_package_json(request)
    if package is not None:
        deps: list[str] = []
        for key, label in (("dependencies", ""), ("devDependencies", " (dev)")):
            section = package.get(key)
            if isinstance(section, dict):
                deps.extend(f"{name} {version}{label}" for name, version in section.items())
        return deps[:MAX_EXTERNAL_DEPS]

    if "requirements.txt" in request.files:
        text = _read_or_none(request, "requirements.txt") or ""
        deps = []
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line or line.startswith("-"):
                continue
            match = _REQUIREMENT.match(line)
            if match:
                name, version = match.group(1), (match.group(3) or "").strip()
                deps.append(f"{name} {version}" if version else name)
        return deps[:MAX_EXTERNAL_DEPS]

    pyproject = _load_toml(request, "pyproject.toml")
    if pyproject is not None:
        project = pyproject.get("project")
        declared = project.get("dependencies") if isinstance(project, dict) else None
        if isinstance(declared, list):
            return [str(item) for item in declared][:MAX_EXTERNAL_DEPS]

    cargo = _load_toml(request, "Cargo.toml")
    if cargo is not None:
        section = cargo.get("dependencies")
        deps = []
        if isinstance(section, dict):
            for name, spec in section.items():
                if isinstance(spec, str):
                    deps.append(f"{name} {spec}")
                elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
                    deps.append(f"{name} {spec['version']}")
        return deps[:MAX_EXTERNAL_DEPS]

    if "go.mod" in request.files:
        text = _read_or_none(request, "go.mod") or ""
        block = _GO_REQUIRE_BLOCK.search(text)
        deps = []
        if block is not None:
            for raw in block.group(1).splitlines():
                parts = raw.strip().split()
                if len(parts) >= 2 and not parts[0].startswith("//"):
                    deps.append(f"{parts[0]} {parts[1]}")
        else:
            deps = [f"{m.group(1)} {m.group(2)}" for m in _GO_REQUIRE_LINE.finditer(text)]
        return deps[:MAX_EXTERNAL_DEPS]

    return []


def _project_metadata(request: BuildRequest) -> dict[str, str]:
    fallback_name = request.target.absolute_path.name or "unknown"

    package = _load_package_json(request)
    if package is not None:
        meta = {
            "name": str(package.get("name") or fallback_name),
            "description": str(package.get("description") or "Node.js project"),
            "language": "typescript" if "tsconfig.json" in request.files else "javascript",
            "package_manager": "npm",
        }
        framework = _detect_framework(package)
        if framework is not None:
            meta["framework"] = framework
        return meta

    pyproject = _load_toml(request, "pyproject.toml")
    if pyproject is not None:
        project = pyproject.get("project")
        project = project if isinstance(project, dict) else {}
        return {
            "name": str(project.get("name") or fallback_name),
            "description": str(project.get("description") or "Python project"),
            "language": "python",
        }

    cargo = _load_toml(request, "Cargo.toml")
    if cargo is not None:
        package_table = cargo.get("package")
        package_table = package_table if isinstance(package_table, dict) else {}
        return {
            "name": str(package_table.get("name") or fallback_name),
            "description": str(package_table.get("description") or "Rust project"),
            "language": "rust",
            "package_manager": "cargo",
        }

    if "go.mod" in request.files:
        text = _read_or_none(request, "go.mod") or ""
        match = _GO_MODULE.search(text)
        name = match.group(1).rsplit("/", 1)[-1] if match else fallback_name
        return {"name": name, "description": "Go project", "language": "go"}

    return {"name": fallback_name, "description": "Project root", "language": "unknown"}


def _detect_framework(package: Mapping[str, Any]) -> str | None:
    deps: dict[str, Any] = {}
    for key in ("dependencies", "devDependencies"):
        section = package.get(key)
        if isinstance(section, dict):
            deps.update(section)
    for dependency, framework in _FRAMEWORKS:
        if dependency in deps:
            return framework
    return None


__all__ = ["BUILD_MODES", "StaticBuildAction"]
