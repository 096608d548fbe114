from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable


def resolve_path(record: Any, path: tuple[str, ...] | str) -> Any:
    """
    Read a dotted path (or a tuple of names) from a record made of dicts and
    plain objects. A missing step, or a None met on the way, gives None.
    """
    value = record
    for name in path.split('.') if isinstance(path, str) else path:
        if value is None:
            break
        value = value.get(name) if isinstance(value, dict) else getattr(value, name, None)
    return value


class QueryPlan(ABC):
    """
    A node of a deferred query. Plans form a chain through `based_on`; no
    record is read before `execute()` is iterated.

    :ivar based_on: the plan this node reads its records from, None for a leaf.
    """
    based_on: QueryPlan | None

    def __init__(self, based_on: QueryPlan | None = None):
        self.based_on = based_on

    @abstractmethod
    def execute(self) -> Iterable:
        """
        Yield the records of this plan.
        """

    @abstractmethod
    def optimize(self) -> QueryPlan:
        """
        Return an equivalent plan, rewriting the chain below when that helps
        (for instance merging stacked filters). May return self.
        """

    def count(self) -> int:
        return sum(1 for _ in self.execute())
