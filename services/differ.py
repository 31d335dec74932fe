"""Membership change detection between poll cycles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, Tuple


@dataclass(frozen=True)
class MembershipDiff:
    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def diff_names(previous: AbstractSet[str], current: Iterable[str]) -> MembershipDiff:
    """Compare sensor name sets; equal sizes can still hide a swap."""
    current_set = frozenset(current)
    return MembershipDiff(
        added=tuple(sorted(current_set - previous)),
        removed=tuple(sorted(previous - current_set)),
    )
