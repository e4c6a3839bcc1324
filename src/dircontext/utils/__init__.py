"""Utility exports for filesystem, hashing, and concurrency helpers."""

from dircontext.utils.concurrency import BoundedSemaphore, WorkerPool
from dircontext.utils.fs import atomic_write, is_within, read_text_lines
from dircontext.utils.hashing import sha256_bytes, sha256_text, short_digest

__all__ = [
    "BoundedSemaphore",
    "WorkerPool",
    "atomic_write",
    "is_within",
    "read_text_lines",
    "sha256_bytes",
    "sha256_text",
    "short_digest",
]
