"""Quorum threshold policies for anonymous participant removal."""

from __future__ import annotations

from collections.abc import Callable

QuorumPolicy = Callable[[int], int]

MIN_QUORUM = 2


def majority_quorum(capacity: int) -> int:
    """Simple majority of the room capacity, never below two accusers."""
    return max(MIN_QUORUM, capacity // 2 + 1)


def fixed_quorum(threshold: int) -> QuorumPolicy:
    """Return a policy that ignores capacity and always requires ``threshold``."""
    if threshold < 1:
        raise ValueError("threshold must be >= 1")

    def _policy(_: int) -> int:
        return threshold

    return _policy


def resolve_quorum_policy(name: str, *, fixed_threshold: int = 3) -> QuorumPolicy:
    if name == "majority":
        return majority_quorum
    if name == "fixed":
        return fixed_quorum(fixed_threshold)
    raise ValueError(f"unknown quorum policy: {name}")


__all__ = [
    "MIN_QUORUM",
    "QuorumPolicy",
    "fixed_quorum",
    "majority_quorum",
    "resolve_quorum_policy",
]
