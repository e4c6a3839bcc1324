"""Build actions: the contract, the static builder, and signature extraction."""

from dircontext.generator.base import (
    BuildAction,
    BuildActionError,
    BuildRequest,
    CallableBuildAction,
)
from dircontext.generator.evidence import collect_basic_evidence
from dircontext.generator.signatures import (
    PythonAstStrategy,
    RegexStrategy,
    Signature,
    SignatureExtractor,
)
from dircontext.generator.static import BUILD_MODES, StaticBuildAction

__all__ = [
    "BUILD_MODES",
    "BuildAction",
    "BuildActionError",
    "BuildRequest",
    "CallableBuildAction",
    "PythonAstStrategy",
    "RegexStrategy",
    "Signature",
    "SignatureExtractor",
    "StaticBuildAction",
    "collect_basic_evidence",
]
