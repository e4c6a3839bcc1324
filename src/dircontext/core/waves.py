"""Group the Target tree into leaves-first build waves."""

from __future__ import annotations

from collections.abc import Sequence

from dircontext.core.scanner import Target, flatten_bottom_up

BuildWave = tuple[Target, ...]


class WaveOrderError(ValueError):
    """Raised when a wave sequence breaks the ordering or parallel-safety invariant."""

    violations: tuple[str, ...]

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = tuple(violations)
        preview = "; ".join(self.violations[:3])
        suffix = "..." if len(self.violations) > 3 else ""
        super().__init__(f"invalid build waves: {preview}{suffix}")


def compute_heights(root: Target) -> dict[str, int]:
    """Return each Target's height: 0 for leaves, else ``1 + max(child heights)``."""

    heights: dict[str, int] = {}
    for target in flatten_bottom_up(root):
        if not target.children:
            heights[target.relative_id] = 0
        else:
            heights[target.relative_id] = 1 + max(
                heights[child.relative_id] for child in target.children
            )
    return heights


def partition_waves(root: Target) -> tuple[BuildWave, ...]:
    """Partition the tree under ``root`` into waves ordered leaves first.

    Grouping by height rather than path depth keeps unrelated subtrees with
    the same shape in one wave. Within a wave, bottom-up traversal order is
    kept.
    """

    heights = compute_heights(root)
    buckets: dict[int, list[Target]] = {}
    for target in flatten_bottom_up(root):
        buckets.setdefault(heights[target.relative_id], []).append(target)
    return tuple(tuple(buckets[height]) for height in sorted(buckets))


def validate_waves(waves: Sequence[Sequence[Target]]) -> None:
    """Raise ``WaveOrderError`` unless every child precedes its parent's wave
    and no wave holds an ancestor/descendant pair."""

    wave_of: dict[str, int] = {}
    violations: list[str] = []
    for index, wave in enumerate(waves):
        for target in wave:
            if target.relative_id in wave_of:
                violations.append(f"{target.relative_id} appears in more than one wave")
            wave_of[target.relative_id] = index

    for index, wave in enumerate(waves):
        members = {target.relative_id for target in wave}
        for target in wave:
            for child in target.children:
                child_wave = wave_of.get(child.relative_id)
                if child_wave is not None and child_wave >= index:
                    violations.append(
                        f"{child.relative_id} (wave {child_wave}) does not precede "
                        f"parent {target.relative_id} (wave {index})"
                    )
            for descendant in target.walk():
                if descendant is not target and descendant.relative_id in members:
                    violations.append(
                        f"{target.relative_id} shares wave {index} with descendant "
                        f"{descendant.relative_id}"
                    )

    if violations:
        raise WaveOrderError(violations)


__all__ = [
    "BuildWave",
    "WaveOrderError",
    "compute_heights",
    "partition_waves",
    "validate_waves",
]
