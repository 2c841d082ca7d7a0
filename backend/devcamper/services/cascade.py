# backend/devcamper/services/cascade.py
from typing import Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DevcamperError, NotFoundError, UpstreamError
from ..utils.logging import service_logger
from .aggregates import AggregateMaintainer
from .events import ChildDeleted
from .relations import RelationGraph
from .store import Store


class CascadeEngine:
    """Removes a parent together with every child that references it.

    Children go first, then the parent, all inside the caller's transaction.
    Deleting a child that is already gone is a no-op, so a failed cascade can
    simply be retried.
    """

    def __init__(self, graph: RelationGraph, maintainer: AggregateMaintainer, store_factory=Store):
        self.graph = graph
        self.maintainer = maintainer
        self.store_factory = store_factory

    async def delete_parent(self, db: Session, parent_collection: str, parent_id: Any) -> int:
        """Delete a parent and its cascading children; returns the number of children removed"""
        store = self.store_factory(db)
        if store.collection(parent_collection).find_by_id(parent_id) is None:
            raise NotFoundError.for_id(parent_collection, parent_id)

        service_logger.info("Starting cascade delete", extra={
            "collection": parent_collection,
            "parent_id": parent_id
        })

        try:
            removed = await self._delete_children(db, store, parent_collection, parent_id)
            store.collection(parent_collection).delete_by_id(parent_id)
        except DevcamperError as e:
            service_logger.error("Cascade delete failed", extra={
                "collection": parent_collection,
                "parent_id": parent_id,
                "error": e.message
            })
            if isinstance(e, UpstreamError):
                raise
            raise UpstreamError(f"Failed to delete {parent_collection} {parent_id}: {e.message}")
        except SQLAlchemyError as e:
            service_logger.error("Cascade delete failed", extra={
                "collection": parent_collection,
                "parent_id": parent_id,
                "error": str(e)
            })
            raise UpstreamError(f"Failed to delete {parent_collection} {parent_id}")

        service_logger.info("Cascade delete completed", extra={
            "collection": parent_collection,
            "parent_id": parent_id,
            "children_removed": removed
        })
        return removed

    async def _delete_children(self, db: Session, store: Store, parent_collection: str, parent_id: Any) -> int:
        removed = 0
        cleanup: List[ChildDeleted] = []

        for relation in self.graph.for_parent(parent_collection):
            if not relation.cascade_delete:
                continue

            children = store.collection(relation.child)
            child_ids = children.find_ids({relation.foreign_key: parent_id})
            service_logger.debug("Cascading to child collection", extra={
                "collection": relation.child,
                "foreign_key": relation.foreign_key,
                "parent_id": parent_id,
                "child_count": len(child_ids)
            })

            for child_id in child_ids:
                # grandchildren first
                if self.graph.is_parent(relation.child):
                    removed += await self._delete_children(db, store, relation.child, child_id)

                document = children.find_by_id(child_id)
                if document is None:
                    continue
                parents = {
                    other.foreign_key: getattr(document, other.foreign_key)
                    for other in self.graph.for_child(relation.child)
                }
                if children.delete_by_id(child_id):
                    removed += 1
                    cleanup.append(ChildDeleted(
                        collection=relation.child,
                        document_id=child_id,
                        parents=parents,
                        skip=frozenset({(parent_collection, parent_id)}),
                    ))

        # other parents of the removed children still need fresh aggregates
        for event in cleanup:
            await self.maintainer.handle(db, event)

        return removed
