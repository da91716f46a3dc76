"""Closure resolution and delta calculation over a store's reference graph."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from nsync.store.models import DeltaResult, PathRecord
from nsync.store.path_info import PathInfoProvider

logger = logging.getLogger(__name__)


def resolve_closure(
    root_paths: Sequence[str], provider: PathInfoProvider
) -> list[PathRecord]:
    """Return every record reachable from *root_paths*, sorted by path.

    Breadth-first: each round queries the whole frontier in one batch, and
    a path is never queried twice. MissingPathError from the provider
    propagates unchanged.
    """
    visited: set[str] = set(root_paths)
    frontier = list(dict.fromkeys(root_paths))
    records: dict[str, PathRecord] = {}
    rounds = 0

    while frontier:
        rounds += 1
        infos = provider.query(frontier)
        frontier = []
        for record in infos.values():
            records[record.path] = record
            for reference in record.references:
                if reference not in visited:
                    visited.add(reference)
                    frontier.append(reference)

    logger.debug(
        "resolved closure of %d root(s): %d paths in %d round(s)",
        len(root_paths),
        len(records),
        rounds,
    )
    return sorted(records.values(), key=lambda r: r.path)


def compute_delta(
    from_roots: Sequence[str], to_root: str, provider: PathInfoProvider
) -> DeltaResult:
    """Diff the closure of *to_root* against the union of the baseline closures.

    Each baseline is resolved on its own and the results are unioned. With
    no baselines the whole closure counts as added.
    """
    baseline: set[str] = set()
    for root in from_roots:
        baseline.update(r.path for r in resolve_closure([root], provider))

    resulting = resolve_closure([to_root], provider)
    added = [r for r in resulting if r.path not in baseline]

    return DeltaResult(all_resulting_items=tuple(resulting), added=tuple(added))
