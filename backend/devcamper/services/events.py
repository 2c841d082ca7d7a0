# backend/devcamper/services/events.py
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Union

from sqlalchemy.orm import Session

from ..utils.logging import service_logger


@dataclass(frozen=True)
class ChildCreated:
    collection: str
    document_id: Any
    # foreign key field -> parent id
    parents: Mapping[str, Any]


@dataclass(frozen=True)
class ChildUpdated:
    collection: str
    document_id: Any
    changed_fields: FrozenSet[str]
    previous_parents: Mapping[str, Any]
    parents: Mapping[str, Any]


@dataclass(frozen=True)
class ChildDeleted:
    collection: str
    document_id: Any
    parents: Mapping[str, Any]
    # (collection, id) of parents that are going away and need no recompute
    skip: FrozenSet[tuple] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ParentDeleted:
    collection: str
    document_id: Any


MutationEvent = Union[ChildCreated, ChildUpdated, ChildDeleted, ParentDeleted]


class MutationDispatcher:
    """Routes mutation events to the aggregate maintainer and the cascade engine"""

    def __init__(self, maintainer, cascade):
        self.maintainer = maintainer
        self.cascade = cascade

    async def dispatch(self, db: Session, event: MutationEvent) -> None:
        service_logger.debug("Dispatching mutation event", extra={
            "event": type(event).__name__,
            "collection": event.collection,
            "document_id": event.document_id
        })
        if isinstance(event, ParentDeleted):
            await self.cascade.delete_parent(db, event.collection, event.document_id)
        else:
            await self.maintainer.handle(db, event)
