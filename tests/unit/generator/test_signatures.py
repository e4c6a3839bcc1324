"""
dircontext: unit tests for signature extraction

Purpose
- The structured analyzer answers for parsable Python; the pattern analyzer
  answers for everything else it knows; unknown suffixes yield nothing.
"""

from __future__ import annotations

from dircontext.generator.signatures import (
    PythonAstStrategy,
    RegexStrategy,
    Signature,
    SignatureExtractor,
)

_PYTHON_SOURCE = '''\
"""Module docs."""

import os


def greet(name: str, *, loud: bool = False) -> str:
    return name


async def fetch(url):
    return url


class Client(Base):
    pass


def _private():
    pass


class _Hidden:
    pass
'''


def test_python_ast_renders_public_top_level_signatures() -> None:
    signatures = SignatureExtractor().extract(_PYTHON_SOURCE, ".py")

    assert [sig.name for sig in signatures] == ["greet", "fetch", "Client"]
    assert signatures[0] == Signature(
        name="greet",
        kind="function",
        text="def greet(name: str, *, loud: bool=False) -> str",
    )
    assert signatures[1].text == "async def fetch(url)"
    assert signatures[2] == Signature(name="Client", kind="class", text="class Client(Base)")


def test_unparsable_python_falls_back_to_patterns() -> None:
    text = "def ok(:\n    pass\nclass Thing:\n    pass\ndef _skip():\n    pass\n"

    assert PythonAstStrategy().extract(text, ".py") is None
    signatures = SignatureExtractor().extract(text, ".py")

    assert [(sig.kind, sig.name) for sig in signatures] == [("def", "ok"), ("class", "Thing")]


def test_typescript_exports() -> None:
    text = (
        "export function build() {}\n"
        "export default class Router {}\n"
        "export const LIMIT = 3;\n"
        "export async function load() {}\n"
        "const internal = 1;\n"
        "export interface Options {}\n"
    )

    names = [sig.name for sig in SignatureExtractor().extract(text, ".ts")]

    assert names == ["build", "Router", "LIMIT", "load", "Options"]


def test_go_only_exported_symbols() -> None:
    text = (
        "package server\n\n"
        "func Start() error { return nil }\n"
        "func helper() {}\n"
        "func (s *Server) Serve() {}\n"
        "type Config struct {}\n"
        "type internal struct {}\n"
    )

    names = [sig.name for sig in SignatureExtractor().extract(text, ".go")]

    assert names == ["Start", "Serve", "Config"]


def test_rust_public_items() -> None:
    text = "pub fn run() {}\nfn private() {}\npub struct State;\npub async fn poll() {}\n"

    names = [sig.name for sig in RegexStrategy().extract(text, ".rs") or []]

    assert names == ["run", "State", "poll"]


def test_unknown_suffix_yields_nothing() -> None:
    extractor = SignatureExtractor()

    assert extractor.extract("whatever", ".md") == []
    assert not extractor.supports(".md")
    assert extractor.supports(".PY")
    assert extractor.supports(".tsx")
    assert extractor.supports(".rs")


def test_ast_cache_is_per_instance_and_clearable() -> None:
    first = PythonAstStrategy()
    second = PythonAstStrategy()

    assert first.extract(_PYTHON_SOURCE, ".py") == first.extract(_PYTHON_SOURCE, ".py")
    assert first._cache is not None and len(first._cache) == 1
    assert second._cache is None

    first.clear()
    assert first._cache is None


def test_custom_strategy_order_is_respected() -> None:
    extractor = SignatureExtractor([RegexStrategy()])

    signatures = extractor.extract("def visible(x):\n    return x\n", ".py")

    assert signatures == [Signature(name="visible", kind="def", text="def visible")]
    assert len(extractor.strategies) == 1
