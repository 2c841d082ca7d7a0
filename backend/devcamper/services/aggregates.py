# backend/devcamper/services/aggregates.py
import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DevcamperError, UpstreamError
from ..utils.logging import service_logger
from .events import ChildDeleted, ChildUpdated, MutationEvent
from .relations import Relation, RelationGraph
from .store import Store

ParentKey = Tuple[str, Any]

# parent keys whose lock the current task already holds
_held_keys: ContextVar[FrozenSet[ParentKey]] = ContextVar("held_parent_keys", default=frozenset())


class AggregateMaintainer:
    """Keeps parent aggregate fields equal to the reduction of their current children.

    Recomputes always read the full child set, so running one twice gives the
    same answer. Work on one parent is serialized through a per-parent
    asyncio.Lock; locks are FIFO, so the recompute that started last is the
    one whose value sticks.
    """

    def __init__(self, graph: RelationGraph, store_factory=Store):
        self.graph = graph
        self.store_factory = store_factory
        self._locks: "weakref.WeakValueDictionary[ParentKey, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: ParentKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, collection: str, parent_id: Any) -> bool:
        lock = self._locks.get((collection, parent_id))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def serialized(self, keys: Iterable[ParentKey]):
        """Hold the locks of several parents; re-entrant within one task"""
        held = _held_keys.get()
        pending = sorted(
            {key for key in keys if key[1] is not None and key not in held},
            key=lambda key: (str(key[0]), str(key[1]))
        )
        locks = [self._lock_for(key) for key in pending]
        acquired: List[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            token = _held_keys.set(held | frozenset(pending))
            try:
                yield
            finally:
                _held_keys.reset(token)
        finally:
            for lock in reversed(acquired):
                lock.release()

    async def recompute(self, db: Session, parent_collection: str, parent_id: Any) -> Dict[str, Any]:
        """Rewrite every aggregate field of one parent from its current children"""
        async with self.serialized([(parent_collection, parent_id)]):
            start_time = time.time()
            store = self.store_factory(db)
            parents = store.collection(parent_collection)
            try:
                if parents.find_by_id(parent_id) is None:
                    service_logger.debug("Skipping recompute for missing parent", extra={
                        "collection": parent_collection,
                        "parent_id": parent_id
                    })
                    return {}

                values = {}
                for relation in self.graph.aggregates_for_parent(parent_collection):
                    reduced = await self._reduce(store, relation, parent_id)
                    values[relation.aggregate.target_field] = relation.aggregate.finalize(reduced)

                if values:
                    parents.update_by_id(parent_id, values, revalidate=False)
            except DevcamperError:
                raise
            except SQLAlchemyError as e:
                service_logger.error("Aggregate recompute failed", extra={
                    "collection": parent_collection,
                    "parent_id": parent_id,
                    "error": str(e)
                })
                raise UpstreamError(f"Failed to recompute aggregates for {parent_collection} {parent_id}")

            service_logger.info("Recomputed aggregates", extra={
                "collection": parent_collection,
                "parent_id": parent_id,
                "values": values,
                "execution_time_ms": round((time.time() - start_time) * 1000, 2)
            })
            return values

    async def _reduce(self, store: Store, relation: Relation, parent_id: Any) -> Any:
        spec = relation.aggregate
        groups = store.collection(relation.child).aggregate_group_reduce(
            {relation.foreign_key: parent_id},
            relation.foreign_key,
            spec.source_field,
            spec.reducer,
        )
        return groups.get(parent_id)

    def affected_parents(self, event: MutationEvent) -> List[ParentKey]:
        """Parents whose aggregates an event invalidates, in a stable order"""
        targets: List[ParentKey] = []
        for relation in self.graph.for_child(event.collection):
            if relation.aggregate is None:
                continue

            if isinstance(event, ChildUpdated):
                changed = event.changed_fields
                if relation.foreign_key not in changed and relation.aggregate.source_field not in changed:
                    continue
                candidates = [
                    event.previous_parents.get(relation.foreign_key),
                    event.parents.get(relation.foreign_key),
                ]
            else:
                candidates = [event.parents.get(relation.foreign_key)]

            for parent_id in candidates:
                key = (relation.parent, parent_id)
                if parent_id is None or key in targets:
                    continue
                if isinstance(event, ChildDeleted) and key in event.skip:
                    continue
                targets.append(key)
        return targets

    async def handle(self, db: Session, event: MutationEvent) -> None:
        for parent_collection, parent_id in self.affected_parents(event):
            await self.recompute(db, parent_collection, parent_id)
