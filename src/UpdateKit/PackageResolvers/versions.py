"""Version parsing and ordering helpers.

Versions are :class:`packaging.version.Version` values: hashable and totally
ordered, which is all the aggregate resolver relies on.  Release metadata
stores them as strings, so resolvers parse through :func:`parse_version`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from packaging.version import InvalidVersion, Version

LOGGER = logging.getLogger(__name__)

VersionLike = Union[str, Version]

__all__ = ["Version", "VersionLike", "coerce_version", "parse_version", "sorted_unique"]


def parse_version(value: str) -> Optional[Version]:
    """Parse ``value`` into a :class:`Version`, returning ``None`` when invalid."""

    candidate = (value or "").strip()
    if candidate[:1] in {"v", "V"}:
        candidate = candidate[1:]
    try:
        return Version(candidate)
    except InvalidVersion:
        LOGGER.debug("ignoring unparseable version %r", value)
        return None


def coerce_version(value: VersionLike) -> Version:
    """Return ``value`` as a :class:`Version`, raising ``ValueError`` if it is invalid."""

    if isinstance(value, Version):
        return value
    parsed = parse_version(value)
    if parsed is None:
        raise ValueError(f"Invalid version: {value!r}")
    return parsed


def sorted_unique(versions: Iterable[Version]) -> List[Version]:
    """Deduplicate by value and sort ascending."""

    return sorted(set(versions))
