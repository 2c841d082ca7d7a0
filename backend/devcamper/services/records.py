# backend/devcamper/services/records.py
import time
from typing import Any, Dict, List, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DevcamperError, UpstreamError
from ..utils.logging import service_logger
from .aggregates import AggregateMaintainer, ParentKey
from .events import ChildCreated, ChildDeleted, ChildUpdated, MutationDispatcher, ParentDeleted
from .relations import RelationGraph
from .store import Store


class RecordService:
    """Mutation path for every collection.

    Each call performs the store write, emits the matching event, waits for
    the recomputes or cascade it triggers and commits, all while holding the
    locks of the parents involved. Nothing is acknowledged half done.
    """

    def __init__(self, graph: RelationGraph, dispatcher: MutationDispatcher,
                 maintainer: AggregateMaintainer, store_factory=Store):
        self.graph = graph
        self.dispatcher = dispatcher
        self.maintainer = maintainer
        self.store_factory = store_factory

    def parent_refs(self, collection: str, source: Any) -> Dict[str, Any]:
        """Foreign key -> parent id for a document or a values mapping"""
        refs = {}
        for relation in self.graph.for_child(collection):
            if isinstance(source, Mapping):
                refs[relation.foreign_key] = source.get(relation.foreign_key)
            else:
                refs[relation.foreign_key] = getattr(source, relation.foreign_key, None)
        return refs

    def lock_keys(self, collection: str, *refs: Mapping[str, Any]) -> List[ParentKey]:
        keys = []
        for relation in self.graph.for_child(collection):
            for ref in refs:
                key = (relation.parent, ref.get(relation.foreign_key))
                if key[1] is not None and key not in keys:
                    keys.append(key)
        return keys

    def ensure_parents_exist(self, store: Store, collection: str, refs: Mapping[str, Any]) -> None:
        for relation in self.graph.for_child(collection):
            parent_id = refs.get(relation.foreign_key)
            if parent_id is not None:
                store.collection(relation.parent).get(parent_id)

    async def create(self, db: Session, collection: str, values: Mapping[str, Any]) -> Any:
        start_time = time.time()
        store = self.store_factory(db)
        refs = self.parent_refs(collection, values)
        self.ensure_parents_exist(store, collection, refs)

        async with self.maintainer.serialized(self.lock_keys(collection, refs)):
            try:
                document = store.collection(collection).create(values)
                if self.graph.is_child(collection):
                    await self.dispatcher.dispatch(db, ChildCreated(collection, document.id, refs))
                db.commit()
            except Exception as e:
                self._fail(db, "create", collection, None, e)

        db.refresh(document)
        service_logger.info("Document created", extra={
            "collection": collection,
            "document_id": document.id,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return document

    async def update(self, db: Session, collection: str, document_id: Any, patch: Mapping[str, Any]) -> Any:
        start_time = time.time()
        store = self.store_factory(db)
        documents = store.collection(collection)

        while True:
            previous_refs = self.parent_refs(collection, documents.get(document_id))
            new_refs = {key: patch.get(key, value) for key, value in previous_refs.items()}
            if new_refs != previous_refs:
                self.ensure_parents_exist(store, collection, new_refs)

            async with self.maintainer.serialized(self.lock_keys(collection, previous_refs, new_refs)):
                # re-read under the locks; the document may have moved while we waited
                db.expire_all()
                document = documents.get(document_id)
                if self.parent_refs(collection, document) != previous_refs:
                    service_logger.debug("Parents changed while waiting for locks, retrying", extra={
                        "collection": collection,
                        "document_id": document_id
                    })
                    continue

                try:
                    before = documents.snapshot(document)
                    document = documents.update_by_id(document_id, patch, revalidate=True)
                    after = documents.snapshot(document)
                    changed = frozenset(key for key, value in after.items() if before.get(key) != value)

                    if changed and self.graph.is_child(collection):
                        await self.dispatcher.dispatch(db, ChildUpdated(
                            collection=collection,
                            document_id=document_id,
                            changed_fields=changed,
                            previous_parents=previous_refs,
                            parents=self.parent_refs(collection, document),
                        ))
                    db.commit()
                except Exception as e:
                    self._fail(db, "update", collection, document_id, e)
            break

        db.refresh(document)
        service_logger.info("Document updated", extra={
            "collection": collection,
            "document_id": document_id,
            "changed_fields": sorted(changed),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return document

    async def delete(self, db: Session, collection: str, document_id: Any) -> None:
        start_time = time.time()
        store = self.store_factory(db)
        documents = store.collection(collection)
        document = documents.get(document_id)
        refs = self.parent_refs(collection, document)

        keys = self.lock_keys(collection, refs)
        if self.graph.is_parent(collection):
            keys.append((collection, document_id))

        async with self.maintainer.serialized(keys):
            try:
                if self.graph.is_parent(collection):
                    await self.dispatcher.dispatch(db, ParentDeleted(collection, document_id))
                else:
                    documents.delete_by_id(document_id)
                if self.graph.is_child(collection):
                    await self.dispatcher.dispatch(db, ChildDeleted(collection, document_id, refs))
                db.commit()
            except Exception as e:
                self._fail(db, "delete", collection, document_id, e)

        service_logger.info("Document deleted", extra={
            "collection": collection,
            "document_id": document_id,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })

    @staticmethod
    def _fail(db: Session, operation: str, collection: str, document_id: Any, error: Exception):
        """Roll back the unit of work and re-raise as a client or upstream error"""
        db.rollback()
        if isinstance(error, DevcamperError):
            service_logger.warning(f"Failed to {operation} document", extra={
                "collection": collection,
                "document_id": document_id,
                "error": error.message
            })
            raise error
        service_logger.error(f"Failed to {operation} document", extra={
            "collection": collection,
            "document_id": document_id,
            "error": str(error)
        }, exc_info=True)
        if isinstance(error, SQLAlchemyError):
            raise UpstreamError(f"Failed to {operation} {collection.rstrip('s')}") from error
        raise UpstreamError() from error
