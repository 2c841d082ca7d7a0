# backend/devcamper/services/query_builder.py
import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import JSON, Select, false, inspect, select
from sqlalchemy.orm import load_only

from ..errors import ValidationError
from ..utils.logging import service_logger

META_KEYS = {"select", "sort", "page", "limit"}
OPERATORS = {"gt", "gte", "lt", "lte", "in"}
DEFAULT_SORT: List[Tuple[str, bool]] = [("created_at", True)]
# largest offset a 64-bit SQL integer can hold
MAX_OFFSET = 2 ** 63 - 1

# field[op]; anything that isn't a known operator stays a literal key
BRACKET_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<op>[^\[\]]*)\]$")


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _split_csv(value: str) -> List[str]:
    return [token.strip() for token in str(value).split(",") if token.strip()]


@dataclass
class QueryRequest:
    """Untyped list request: filters plus select/sort/page/limit"""
    filters: Dict[str, Any] = field(default_factory=dict)
    select: Optional[List[str]] = None
    sort: Optional[List[Tuple[str, bool]]] = None
    page: int = 1
    limit: int = 25

    @classmethod
    def from_params(cls, params: Mapping[str, Any], default_limit: int = 25) -> "QueryRequest":
        """Parse query-string style parameters.

        `select` and `sort` are comma separated, a leading `-` on a sort token
        means descending. Remaining keys are filters; `field[op]=value` with a
        known operator becomes `{field: {op: value}}`, any other bracket
        content is kept as a literal key.
        """
        filters: Dict[str, Any] = {}
        for key, value in params.items():
            if key in META_KEYS:
                continue
            match = BRACKET_KEY.match(key)
            if match and match.group("op") in OPERATORS:
                existing = filters.get(match.group("field"))
                operators = existing if isinstance(existing, dict) else {}
                operators[match.group("op")] = value
                filters[match.group("field")] = operators
            else:
                filters[key] = value

        select_fields = _split_csv(params["select"]) if params.get("select") else None

        sort = None
        if params.get("sort"):
            sort = [
                (token[1:], True) if token.startswith("-") else (token, False)
                for token in _split_csv(params["sort"])
            ]

        return cls(
            filters=filters,
            select=select_fields,
            sort=sort,
            page=_positive_int(params.get("page"), 1),
            limit=_positive_int(params.get("limit"), default_limit),
        )


@dataclass
class BuiltQuery:
    model: Any
    predicates: List[Any]
    projection: Optional[List[str]]
    order: List[Tuple[str, bool]]
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def statement(self) -> Select:
        stmt = select(self.model).where(*self.predicates)
        if self.projection:
            stmt = stmt.options(load_only(*[getattr(self.model, name) for name in self.projection]))
        for name, descending in self.order:
            column = getattr(self.model, name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return stmt.offset(self.skip).limit(self.limit)


class QueryBuilder:
    """Translates a QueryRequest into predicates, projection, order and paging for a model"""

    def __init__(self, default_limit: int = 25, max_limit: int = 100):
        self.default_limit = default_limit
        self.max_limit = max_limit

    def build(self, model, request: QueryRequest, scope: Optional[Mapping[str, Any]] = None) -> BuiltQuery:
        columns = self.columns(model)
        predicates = self.predicates(model, request.filters, columns)
        if scope:
            predicates.extend(self.predicates(model, scope, columns))

        limit = min(_positive_int(request.limit, self.default_limit), self.max_limit)
        # pages past the last representable offset are just as empty
        page = min(_positive_int(request.page, 1), MAX_OFFSET // limit + 1)

        return BuiltQuery(
            model=model,
            predicates=predicates,
            projection=self.projection(request.select, columns),
            order=self.order(request.sort, columns),
            page=page,
            limit=limit,
        )

    @staticmethod
    def columns(model) -> Dict[str, Any]:
        return {attr.key: attr for attr in inspect(model).column_attrs}

    def predicates(self, model, filters: Mapping[str, Any], columns: Dict[str, Any]) -> List[Any]:
        predicates = []
        for key, value in filters.items():
            if isinstance(value, Mapping):
                for op, operand in value.items():
                    if op in OPERATORS:
                        predicates.append(self._compare(model, key, op, operand, columns))
                    else:
                        # unknown operator: literal equality on the raw key
                        predicates.append(self._equals(model, f"{key}[{op}]", operand, columns))
            else:
                predicates.append(self._equals(model, key, value, columns))
        return predicates

    def _equals(self, model, key: str, value: Any, columns: Dict[str, Any]):
        if key not in columns:
            service_logger.debug("Filter on unknown field matches nothing", extra={
                "collection": model.__tablename__,
                "field": key
            })
            return false()
        return getattr(model, key) == self._coerce(key, value, columns[key])

    def _compare(self, model, key: str, op: str, value: Any, columns: Dict[str, Any]):
        if key not in columns:
            return false()
        column = getattr(model, key)
        if op == "in":
            values = value if isinstance(value, (list, tuple, set)) else _split_csv(value)
            return column.in_([self._coerce(key, item, columns[key]) for item in values])

        operand = self._coerce(key, value, columns[key])
        if op == "gt":
            return column > operand
        if op == "gte":
            return column >= operand
        if op == "lt":
            return column < operand
        return column <= operand

    @staticmethod
    def _coerce(key: str, value: Any, column_attr) -> Any:
        """Convert a wire value to the column's Python type"""
        if value is None:
            return None
        column_type = column_attr.columns[0].type
        try:
            python_type = None if isinstance(column_type, JSON) else column_type.python_type
        except NotImplementedError:
            python_type = None
        if python_type is None or python_type in (object, dict, list):
            raise ValidationError(f"Field '{key}' cannot be used as a filter")

        if isinstance(value, python_type) and not (python_type is not bool and isinstance(value, bool)):
            return value

        try:
            if python_type is bool:
                lowered = str(value).strip().lower()
                if lowered in ("true", "1"):
                    return True
                if lowered in ("false", "0"):
                    return False
                raise ValueError(value)
            if issubclass(python_type, enum.Enum):
                return python_type(value)
            if python_type is datetime:
                return datetime.fromisoformat(str(value))
            return python_type(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value '{value}' for field '{key}'")

    @staticmethod
    def projection(fields: Optional[List[str]], columns: Dict[str, Any]) -> Optional[List[str]]:
        if not fields:
            return None
        projection = ["id"]
        for name in fields:
            if name in columns and name not in projection:
                projection.append(name)
        return projection

    @staticmethod
    def order(sort: Optional[List[Tuple[str, bool]]], columns: Dict[str, Any]) -> List[Tuple[str, bool]]:
        requested = DEFAULT_SORT if sort is None else sort
        order = [(name, descending) for name, descending in requested if name in columns]
        # insertion order breaks ties
        if not any(name == "id" for name, _ in order):
            order.append(("id", False))
        return order
