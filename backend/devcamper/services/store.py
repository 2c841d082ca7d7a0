# backend/devcamper/services/store.py
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Type

import pydantic
from sqlalchemy import UniqueConstraint, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DuplicateKeyError, NotFoundError, UpstreamError, ValidationError
from ..models import Bootcamp, Course, Review
from ..schemas import BootcampRecord, CourseRecord, ReviewRecord
from ..utils.logging import db_logger
from .query_builder import BuiltQuery
from .relations import Reducer


@dataclass(frozen=True)
class Collection:
    name: str
    model: Type[Any]
    schema: Type[pydantic.BaseModel]


COLLECTIONS: Dict[str, Collection] = {
    "bootcamps": Collection("bootcamps", Bootcamp, BootcampRecord),
    "courses": Collection("courses", Course, CourseRecord),
    "reviews": Collection("reviews", Review, ReviewRecord),
}

REDUCERS = {
    Reducer.AVG: func.avg,
    Reducer.SUM: func.sum,
    Reducer.COUNT: func.count,
}


def format_validation_error(error: pydantic.ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return ", ".join(messages)


class CollectionStore:
    """Store primitives for one collection, bound to a session.

    Writes are flushed, never committed; the caller owns the transaction.
    """

    def __init__(self, db: Session, collection: Collection):
        self.db = db
        self.collection = collection
        self.model = collection.model

    @property
    def name(self) -> str:
        return self.collection.name

    def find(self, query: BuiltQuery, options: Optional[List[Any]] = None) -> List[Any]:
        stmt = query.statement()
        if options:
            stmt = stmt.options(*options)
        return list(self.db.scalars(stmt).all())

    def count_documents(self, predicates: Optional[List[Any]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if predicates:
            stmt = stmt.where(*predicates)
        return self.db.scalar(stmt) or 0

    def find_by_id(self, document_id: Any) -> Optional[Any]:
        return self.db.get(self.model, document_id)

    def get(self, document_id: Any) -> Any:
        document = self.find_by_id(document_id)
        if document is None:
            raise NotFoundError.for_id(self.name, document_id)
        return document

    def find_ids(self, match: Mapping[str, Any]) -> List[Any]:
        stmt = select(self.model.id).where(
            *[getattr(self.model, key) == value for key, value in match.items()]
        ).order_by(self.model.id)
        return list(self.db.scalars(stmt).all())

    def create(self, values: Mapping[str, Any]) -> Any:
        validated = self._validate(values)
        self._check_unique(validated)
        document = self.model(**validated)
        self.db.add(document)
        self._flush()
        db_logger.debug("Document created", extra={
            "collection": self.name,
            "document_id": document.id
        })
        return document

    def update_by_id(self, document_id: Any, patch: Mapping[str, Any], revalidate: bool = True) -> Any:
        document = self.get(document_id)
        if revalidate:
            merged = {**self.snapshot(document), **patch}
            validated = self._validate(merged)
            self._check_unique(validated, exclude_id=document.id)
            # derived fields (e.g. slug) follow the revalidated document
            changes = {key: value for key, value in validated.items() if getattr(document, key) != value}
        else:
            changes = dict(patch)

        for key, value in changes.items():
            setattr(document, key, value)
        self._flush()
        return document

    def delete_by_id(self, document_id: Any) -> bool:
        """Delete a document; an absent document is a no-op"""
        document = self.find_by_id(document_id)
        if document is None:
            return False
        self.db.delete(document)
        self._flush()
        return True

    def aggregate_group_reduce(self, match: Mapping[str, Any], group_key: str,
                               source_field: str, reducer: Reducer) -> Dict[Any, Any]:
        """Reduce `source_field` per `group_key` value over documents matching `match`"""
        group_column = getattr(self.model, group_key)
        reduce = REDUCERS[Reducer(reducer)]
        stmt = (
            select(group_column, reduce(getattr(self.model, source_field)))
            .where(*[getattr(self.model, key) == value for key, value in match.items()])
            .group_by(group_column)
        )
        try:
            return {key: value for key, value in self.db.execute(stmt).all()}
        except SQLAlchemyError as e:
            db_logger.error("Grouped reduction failed", extra={
                "collection": self.name,
                "group_key": group_key,
                "source_field": source_field,
                "error": str(e)
            })
            raise UpstreamError(f"Failed to reduce {source_field} for {self.name}")

    def snapshot(self, document: Any) -> Dict[str, Any]:
        fields = self.collection.schema.model_fields
        return {key: getattr(document, key) for key in fields if hasattr(document, key)}

    def _validate(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            record = self.collection.schema.model_validate(dict(values))
        except pydantic.ValidationError as e:
            raise ValidationError(format_validation_error(e))
        return record.model_dump()

    def _check_unique(self, values: Mapping[str, Any], exclude_id: Any = None) -> None:
        """Pre-check unique columns and unique constraints before hitting the database"""
        table = self.model.__table__
        groups = {(column.name,) for column in table.columns if column.unique}
        groups |= {
            tuple(column.name for column in constraint.columns)
            for constraint in table.constraints
            if isinstance(constraint, UniqueConstraint)
        }
        for group in groups:
            if any(values.get(name) is None for name in group):
                continue
            stmt = select(func.count()).select_from(self.model).where(
                *[getattr(self.model, name) == values[name] for name in group]
            )
            if exclude_id is not None:
                stmt = stmt.where(self.model.id != exclude_id)
            if self.db.scalar(stmt):
                db_logger.warning("Duplicate key rejected", extra={
                    "collection": self.name,
                    "fields": list(group)
                })
                raise DuplicateKeyError()

    def _flush(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            db_logger.warning("Integrity error on flush", extra={
                "collection": self.name,
                "error": str(e.orig)
            })
            if "unique" in str(e.orig).lower():
                raise DuplicateKeyError()
            raise ValidationError(str(e.orig))
        except SQLAlchemyError as e:
            db_logger.error("Store write failed", extra={
                "collection": self.name,
                "error": str(e)
            })
            raise UpstreamError()


class Store:
    """Entry point to the collections for one session"""

    def __init__(self, db: Session, collections: Optional[Mapping[str, Collection]] = None):
        self.db = db
        self.collections = collections or COLLECTIONS

    def collection(self, name: str) -> CollectionStore:
        try:
            return CollectionStore(self.db, self.collections[name])
        except KeyError:
            raise ValueError(f"Unknown collection '{name}'")
