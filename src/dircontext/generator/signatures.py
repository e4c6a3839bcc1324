"""Extract top-level signatures from source text.

Two strategies share one capability: a structured analyzer (Python ``ast``) is
tried first and a pattern-based analyzer covers everything it cannot parse.
"""

from __future__ import annotations

import ast
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final, Protocol

from dircontext.utils.hashing import sha256_text

_PYTHON_SUFFIXES: Final[frozenset[str]] = frozenset({".py", ".pyi"})
_JS_SUFFIXES: Final[frozenset[str]] = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"})

_JS_EXPORT = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?"
    r"(function|class|const|let|type|interface|enum)\s+(\w+)"
)
_PY_DEF = re.compile(r"^(?:async\s+)?(def|class)\s+(\w+)", re.MULTILINE)
_GO_EXPORT = re.compile(r"^(func|type)\s+(?:\([^)]*\)\s*)?([A-Z]\w*)", re.MULTILINE)
_RUST_PUB = re.compile(
    r"^pub\s+(?:async\s+)?(fn|struct|enum|trait|type|mod)\s+(\w+)", re.MULTILINE
)


@dataclass(frozen=True, slots=True)
class Signature:
    name: str
    kind: str
    text: str


class SignatureStrategy(Protocol):
    name: str

    def extract(self, text: str, suffix: str) -> list[Signature] | None:
        """Return signatures, or ``None`` when this strategy cannot handle the input."""
        ...


class PythonAstStrategy:
    """Structured analyzer for Python sources with a per-instance parse cache."""

    name = "python-ast"

    def __init__(self) -> None:
        self._cache: dict[str, tuple[Signature, ...]] | None = None

    def extract(self, text: str, suffix: str) -> list[Signature] | None:
        if suffix not in _PYTHON_SUFFIXES:
            return None

        if self._cache is None:
            self._cache = {}
        key = sha256_text(text)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            tree = ast.parse(text)
        except (SyntaxError, ValueError):
            return None

        found: list[Signature] = []
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                if node.name.startswith("_"):
                    continue
                prefix = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
                rendered = f"{prefix} {node.name}({ast.unparse(node.args)})"
                if node.returns is not None:
                    rendered += f" -> {ast.unparse(node.returns)}"
                found.append(Signature(name=node.name, kind="function", text=rendered))
            elif isinstance(node, ast.ClassDef):
                if node.name.startswith("_"):
                    continue
                bases = ", ".join(ast.unparse(base) for base in node.bases)
                rendered = f"class {node.name}({bases})" if bases else f"class {node.name}"
                found.append(Signature(name=node.name, kind="class", text=rendered))

        self._cache[key] = tuple(found)
        return found

    def clear(self) -> None:
        self._cache = None


class RegexStrategy:
    """Pattern-based fallback for JS/TS, Python, Go and Rust."""

    name = "regex"

    def extract(self, text: str, suffix: str) -> list[Signature] | None:
        if suffix in _JS_SUFFIXES:
            return self._collect(_JS_EXPORT, text)
        if suffix in _PYTHON_SUFFIXES:
            return [sig for sig in self._collect(_PY_DEF, text) if not sig.name.startswith("_")]
        if suffix == ".go":
            return self._collect(_GO_EXPORT, text)
        if suffix == ".rs":
            return self._collect(_RUST_PUB, text)
        return None

    @staticmethod
    def _collect(pattern: re.Pattern[str], text: str) -> list[Signature]:
        return [
            Signature(
                name=match.group(2),
                kind=match.group(1),
                text=f"{match.group(1)} {match.group(2)}",
            )
            for match in pattern.finditer(text)
        ]


class SignatureExtractor:
    """Try each strategy in order and return the first answer."""

    def __init__(self, strategies: Sequence[SignatureStrategy] | None = None) -> None:
        self._strategies: tuple[SignatureStrategy, ...] = (
            tuple(strategies) if strategies is not None else (PythonAstStrategy(), RegexStrategy())
        )

    @property
    def strategies(self) -> tuple[SignatureStrategy, ...]:
        return self._strategies

    def extract(self, text: str, suffix: str) -> list[Signature]:
        normalized = suffix.lower()
        for strategy in self._strategies:
            result = strategy.extract(text, normalized)
            if result is not None:
                return result
        return []

    def supports(self, suffix: str) -> bool:
        normalized = suffix.lower()
        return (
            normalized in _PYTHON_SUFFIXES
            or normalized in _JS_SUFFIXES
            or normalized in {".go", ".rs"}
        )


__all__ = [
    "PythonAstStrategy",
    "RegexStrategy",
    "Signature",
    "SignatureExtractor",
    "SignatureStrategy",
]
