"""Dataset lookup by name, alias, DOI, key or path.

Matching runs in four phases and each entry is reported at most once, in the
first phase that matches it:

1. exact (case-insensitive) match on the dataset name;
2. with ``alt``: exact match on an alternative key (aliases, DOI, key, path);
3. with ``partial``: substring match on the dataset name;
4. with ``alt`` and ``partial``: substring match on an alternative key.

Within a phase, entries appear in manifest order. This ordering is the
tie-break used everywhere a single match is required: "first match" means the
first element of this sequence.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Tuple, Union

from datamanifest.core.model import BaseEntry, Entry
from datamanifest.errors import MultipleMatchesError, NotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from datamanifest.manifest import Manifest

LOG = logging.getLogger(__name__)

Match = Tuple[str, Entry]


def list_alternative_keys(entry: BaseEntry) -> List[str]:
    """Return the alternative lookup keys of ``entry``."""
    return entry.alternative_keys()


def search(manifest: "Manifest", query: str, alt: bool = True, partial: bool = False) -> List[Match]:
    """Return every ``(name, entry)`` matching ``query``, in phase order."""
    needle = query.lower()
    phases: List[Callable[[str, BaseEntry], bool]] = [lambda name, entry: name.lower() == needle]
    if alt:
        phases.append(lambda name, entry: needle in (value.lower() for value in entry.alternative_keys()))
    if partial:
        phases.append(lambda name, entry: needle in name.lower())
    if alt and partial:
        phases.append(lambda name, entry: any(needle in value.lower() for value in entry.alternative_keys()))

    matches: List[Match] = []
    seen = set()
    for predicate in phases:
        for name, entry in manifest.items():
            if name not in seen and predicate(name, entry):
                seen.add(name)
                matches.append((name, entry))
    return matches


def find_by_key(manifest: "Manifest", key: str) -> Optional[Match]:
    """Return the first entry whose storage key equals ``key`` exactly."""
    for name, entry in manifest.items():
        if entry.key == key:
            return name, entry
    return None


def search_one(
    manifest: "Manifest",
    query: str,
    *,
    alt: bool = True,
    partial: bool = False,
    required: bool = True,
    strict: bool = True,
) -> Optional[Match]:
    """Return the single dataset matching ``query``.

    Args:
        manifest: Manifest to search.
        query: Name, alias, DOI, key or path to look for.
        alt: Also match alternative keys.
        partial: Also accept substring matches.
        required: When False, return None instead of raising on no match.
        strict: When False, several matches log a warning and the first one
            (in the order documented in this module) is returned.
    """
    results = search(manifest, query, alt=alt, partial=partial)
    if not results:
        if not required:
            return None
        msg = (
            f"No dataset found for '{query}'.\n"
            f"Available datasets: {', '.join(manifest.entries) or '(none)'}\n"
            f"{repr_datasets(manifest)}"
        )
        raise NotFoundError(msg)
    if len(results) > 1:
        listing = "\n- ".join(
            f"{name} | " + " | ".join(entry.alternative_keys()) for name, entry in results
        )
        msg = f"Multiple datasets found for '{query}':\n- {listing}"
        if strict:
            raise MultipleMatchesError(msg)
        LOG.warning("%s\nUsing the first match '%s'.", msg, results[0][0])
    return results[0]


def list_dataset_keys(
    manifest: "Manifest", alt: bool = True, flat: bool = False
) -> Union[List[List[str]], List[str]]:
    """List dataset names, each followed by its alternative keys when ``alt``."""
    groups: List[List[str]] = []
    for name, entry in manifest.items():
        keys = [name]
        if alt:
            keys.extend(entry.alternative_keys())
        groups.append(keys)
    if flat:
        return [key for group in groups for key in group]
    return groups


def repr_datasets(manifest: "Manifest", alt: bool = True) -> str:
    """Return a human-readable listing of dataset names (and aliases)."""
    lines = ["Datasets including aliases:" if alt else "Datasets:"]
    groups: Iterable[List[str]] = list_dataset_keys(manifest, alt=alt)  # type: ignore[assignment]
    lines.extend("- " + " | ".join(keys) for keys in groups)
    return "\n".join(lines)


__all__ = [
    "Match",
    "find_by_key",
    "list_alternative_keys",
    "list_dataset_keys",
    "repr_datasets",
    "search",
    "search_one",
]
