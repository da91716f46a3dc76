"""Flake building and git pointer handling."""

from nsync.flake.builder import FlakeBuilder, FlakeBuildResult, with_query
from nsync.flake.git import GitPointer, looks_like_git_rev, parse_git_pointer

__all__ = [
    "FlakeBuildResult",
    "FlakeBuilder",
    "GitPointer",
    "looks_like_git_rev",
    "parse_git_pointer",
    "with_query",
]
