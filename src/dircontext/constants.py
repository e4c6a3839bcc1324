"""Stable constants shared by the scanner, store, and CLI."""

from __future__ import annotations

from typing import Final

# Per-directory artifact and project config filenames.
CONTEXT_FILENAME: Final[str] = ".context.yaml"
CONFIG_FILENAME: Final[str] = ".context.config.yaml"
CONTEXTIGNORE_FILENAME: Final[str] = ".contextignore"
GITIGNORE_FILENAME: Final[str] = ".gitignore"

# Artifact schema versions accepted on read.
SCHEMA_VERSION: Final[int] = 1
MIN_SCHEMA_VERSION: Final[int] = 1

FINGERPRINT_LENGTH: Final[int] = 8
DEFAULT_MAX_DEPTH: Final[int] = 10
ROOT_TARGET_ID: Final[str] = "."

# Directory names never descended into.
ALWAYS_IGNORED_DIRS: Final[frozenset[str]] = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        ".nuxt",
        "__pycache__",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        "target",
        "vendor",
        ".cache",
        "coverage",
        ".turbo",
        ".vercel",
        ".svelte-kit",
    }
)

# Lowercased suffixes counted as source-like.
# fmt: off
SOURCE_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
        ".py", ".pyi",
        ".rs",
        ".go",
        ".java", ".kt", ".kts",
        ".c", ".cpp", ".cc", ".h", ".hpp",
        ".cs",
        ".rb",
        ".php",
        ".swift",
        ".scala",
        ".ex", ".exs",
        ".hs",
        ".lua",
        ".r",
        ".sql",
        ".sh", ".bash", ".zsh",
        ".yaml", ".yml", ".json", ".toml", ".xml", ".html", ".css", ".scss",
        ".md", ".mdx", ".txt", ".rst",
        ".vue", ".svelte",
        ".tf", ".hcl",
        ".dockerfile",
        ".graphql", ".gql",
        ".proto",
    }
)
# fmt: on

# Build manifests that count even without a source suffix.
MEANINGFUL_FILENAMES: Final[frozenset[str]] = frozenset(
    {
        "Dockerfile",
        "docker-compose.yaml",
        "docker-compose.yml",
        "Makefile",
        "Cargo.toml",
        "go.mod",
        "pyproject.toml",
        "setup.py",
        "setup.cfg",
        "Gemfile",
        "Rakefile",
        "CMakeLists.txt",
    }
)

# Files that belong to the tool itself and never count as directory content.
RESERVED_FILENAMES: Final[frozenset[str]] = frozenset({CONTEXT_FILENAME, CONFIG_FILENAME})

__all__ = [
    "ALWAYS_IGNORED_DIRS",
    "CONFIG_FILENAME",
    "CONTEXTIGNORE_FILENAME",
    "CONTEXT_FILENAME",
    "DEFAULT_MAX_DEPTH",
    "FINGERPRINT_LENGTH",
    "GITIGNORE_FILENAME",
    "MEANINGFUL_FILENAMES",
    "MIN_SCHEMA_VERSION",
    "RESERVED_FILENAMES",
    "ROOT_TARGET_ID",
    "SCHEMA_VERSION",
    "SOURCE_EXTENSIONS",
]
