# backend/devcamper/services/advanced_results.py
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect
from sqlalchemy.orm import Session, selectinload

from ..utils.logging import service_logger
from .query_builder import BuiltQuery, QueryBuilder, QueryRequest
from .store import Store


@dataclass
class QueryResult:
    items: List[Dict[str, Any]]
    total: int
    pagination: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def envelope(self) -> Dict[str, Any]:
        return {
            "success": True,
            "count": len(self.items),
            "pagination": self.pagination,
            "data": self.items,
        }


def paginate(query: BuiltQuery, total: int) -> Dict[str, Dict[str, int]]:
    pagination = {}
    if query.skip + query.limit < total:
        pagination["next"] = {"page": query.page + 1, "limit": query.limit}
    if query.skip > 0:
        pagination["prev"] = {"page": query.page - 1, "limit": query.limit}
    return pagination


def document_to_dict(document: Any, projection: Optional[Sequence[str]] = None,
                     populate: Optional[Tuple[str, Sequence[str]]] = None) -> Dict[str, Any]:
    """Serialize a model instance, limited to `projection` when given"""
    names = projection or [attr.key for attr in inspect(type(document)).column_attrs]
    data = {name: getattr(document, name) for name in names}
    if populate:
        relation, fields = populate
        related = getattr(document, relation)
        data[relation] = None if related is None else {
            name: getattr(related, name) for name in ["id", *fields]
        }
    return jsonable_encoder(data)


class AdvancedResultsAdapter:
    """Filtered, projected, sorted and paginated listing of one collection"""

    def __init__(self, collection: str, builder: QueryBuilder, count_mode: str = "collection",
                 populate: Optional[Tuple[str, Sequence[str]]] = None, store_factory=Store):
        self.collection = collection
        self.builder = builder
        self.count_mode = count_mode
        self.populate = populate
        self.store_factory = store_factory

    def execute(self, db: Session, request: QueryRequest,
                scope: Optional[Mapping[str, Any]] = None) -> QueryResult:
        start_time = time.time()
        store = self.store_factory(db).collection(self.collection)
        query = self.builder.build(store.model, request, scope=scope)

        options = []
        if self.populate:
            options.append(selectinload(getattr(store.model, self.populate[0])))
        documents = store.find(query, options=options)

        if self.count_mode == "filtered":
            total = store.count_documents(query.predicates)
        else:
            # the scope is part of the collection a nested route lists
            scoped = self.builder.predicates(store.model, scope, self.builder.columns(store.model)) if scope else None
            total = store.count_documents(scoped)

        result = QueryResult(
            items=[document_to_dict(doc, query.projection, self.populate) for doc in documents],
            total=total,
            pagination=paginate(query, total),
        )

        service_logger.info("Executed advanced results query", extra={
            "collection": self.collection,
            "page": query.page,
            "limit": query.limit,
            "returned": len(result.items),
            "total": total,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return result
