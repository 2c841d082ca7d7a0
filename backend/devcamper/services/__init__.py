# backend/devcamper/services/__init__.py
from ..config import settings
from .advanced_results import AdvancedResultsAdapter, QueryResult
from .aggregates import AggregateMaintainer
from .cascade import CascadeEngine
from .events import MutationDispatcher
from .query_builder import QueryBuilder, QueryRequest
from .records import RecordService
from .relations import RelationGraph, build_relation_graph

# Constructed once at startup; the graph is handed to every engine explicitly
relation_graph = build_relation_graph()
query_builder = QueryBuilder(default_limit=settings.DEFAULT_PAGE_LIMIT, max_limit=settings.MAX_PAGE_LIMIT)
aggregate_maintainer = AggregateMaintainer(relation_graph)
cascade_engine = CascadeEngine(relation_graph, aggregate_maintainer)
mutation_dispatcher = MutationDispatcher(aggregate_maintainer, cascade_engine)
record_service = RecordService(relation_graph, mutation_dispatcher, aggregate_maintainer)

__all__ = [
    "AdvancedResultsAdapter", "QueryResult", "AggregateMaintainer", "CascadeEngine",
    "MutationDispatcher", "QueryBuilder", "QueryRequest", "RecordService", "RelationGraph",
    "relation_graph", "query_builder", "aggregate_maintainer", "cascade_engine",
    "mutation_dispatcher", "record_service"
]
