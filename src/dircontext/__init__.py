"""
dircontext: per-directory context artifacts kept in sync with the source tree.

Purpose
- Package root. Exposes the version and keeps import time side-effect free.

Functional requirements
- Must not load config or initialise logging at import time.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
