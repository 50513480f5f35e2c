"""
Reachability policies for grammar units.

A policy is a predicate `reachable(unit_key, completed_units) -> bool`.
Policies that depend on curriculum order are built from the unit keys in
scan order by a factory in POLICIES. The first unit is reachable under
every policy.
"""

from typing import Callable, Collection, Sequence


ReachabilityPolicy = Callable[[str, Collection[str]], bool]
PolicyFactory = Callable[[Sequence[str]], ReachabilityPolicy]


def first_only(unit_keys: Sequence[str]) -> ReachabilityPolicy:
    """Only the first unit can be opened."""
    first = unit_keys[0] if unit_keys else None

    def reachable(unit_key: str, completed: Collection[str]) -> bool:
        return unit_key == first

    return reachable


def first_two(unit_keys: Sequence[str]) -> ReachabilityPolicy:
    """First unit always; second unit once the first is completed."""
    first = unit_keys[0] if unit_keys else None
    second = unit_keys[1] if len(unit_keys) > 1 else None

    def reachable(unit_key: str, completed: Collection[str]) -> bool:
        if unit_key == first:
            return True
        return second is not None and unit_key == second and first in completed

    return reachable


def sequential(unit_keys: Sequence[str]) -> ReachabilityPolicy:
    """Each unit once its predecessor in scan order is completed."""
    predecessors = {key: (unit_keys[i - 1] if i else None) for i, key in enumerate(unit_keys)}

    def reachable(unit_key: str, completed: Collection[str]) -> bool:
        if unit_key not in predecessors:
            return False
        previous = predecessors[unit_key]
        return previous is None or previous in completed

    return reachable


def open_access(unit_keys: Sequence[str]) -> ReachabilityPolicy:
    """Every unit is always reachable."""
    known = frozenset(unit_keys)

    def reachable(unit_key: str, completed: Collection[str]) -> bool:
        return unit_key in known

    return reachable


POLICIES: dict[str, PolicyFactory] = {
    "first_only": first_only,
    "first_two": first_two,
    "sequential": sequential,
    "open": open_access,
}

DEFAULT_POLICY = "first_two"


def get_policy(name: str, unit_keys: Sequence[str]) -> ReachabilityPolicy:
    """
    Build a named policy for a curriculum.

    Raises:
        ValueError: If the name is not one of POLICIES
    """
    try:
        factory = POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown reachability policy {name!r}; expected one of {sorted(POLICIES)}"
        ) from None
    return factory(unit_keys)
