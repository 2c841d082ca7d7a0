# backend/devcamper/services/relations.py
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple


class Reducer(str, Enum):
    AVG = "avg"
    COUNT = "count"
    SUM = "sum"


def ceil_to_nearest(step: int) -> Callable[[float], int]:
    """Round a value up to the next multiple of `step`"""
    def _round(value: float) -> int:
        return int(math.ceil(value / step) * step)

    _round.__name__ = f"ceil_to_nearest_{step}"
    return _round


@dataclass(frozen=True)
class AggregateSpec:
    source_field: str
    reducer: Reducer
    target_field: str
    post_process: Optional[Callable[[Any], Any]] = None
    empty_value: Any = None

    def finalize(self, value: Any) -> Any:
        """Apply post-processing to a reduced value, or return the empty value"""
        if value is None:
            return self.empty_value
        if self.post_process is not None:
            return self.post_process(value)
        return value


@dataclass(frozen=True)
class Relation:
    parent: str
    child: str
    foreign_key: str
    cascade_delete: bool = True
    aggregate: Optional[AggregateSpec] = None


@dataclass(frozen=True)
class RelationGraph:
    """Read-only registry of parent -> child relations.

    Built once at startup and passed explicitly to the engines that need it.
    Lookups return tuples so callers can't mutate the registry.
    """
    relations: Tuple[Relation, ...] = field(default_factory=tuple)

    def __post_init__(self):
        seen = set()
        for relation in self.relations:
            key = (relation.parent, relation.child, relation.foreign_key)
            if key in seen:
                raise ValueError(f"Duplicate relation {relation.parent}->{relation.child} on {relation.foreign_key}")
            seen.add(key)

    @classmethod
    def build(cls, relations: Iterable[Relation]) -> "RelationGraph":
        return cls(tuple(relations))

    def for_parent(self, collection: str) -> Tuple[Relation, ...]:
        return tuple(r for r in self.relations if r.parent == collection)

    def for_child(self, collection: str) -> Tuple[Relation, ...]:
        return tuple(r for r in self.relations if r.child == collection)

    def aggregates_for_parent(self, collection: str) -> Tuple[Relation, ...]:
        return tuple(r for r in self.for_parent(collection) if r.aggregate is not None)

    def is_parent(self, collection: str) -> bool:
        return any(r.parent == collection for r in self.relations)

    def is_child(self, collection: str) -> bool:
        return any(r.child == collection for r in self.relations)


def build_relation_graph() -> RelationGraph:
    return RelationGraph.build([
        Relation(
            parent="bootcamps",
            child="courses",
            foreign_key="bootcamp_id",
            cascade_delete=True,
            aggregate=AggregateSpec(
                source_field="tuition",
                reducer=Reducer.AVG,
                target_field="average_cost",
                post_process=ceil_to_nearest(10),
                empty_value=None,
            ),
        ),
        Relation(
            parent="bootcamps",
            child="reviews",
            foreign_key="bootcamp_id",
            cascade_delete=True,
            aggregate=AggregateSpec(
                source_field="rating",
                reducer=Reducer.AVG,
                target_field="average_rating",
                empty_value=None,
            ),
        ),
    ])
