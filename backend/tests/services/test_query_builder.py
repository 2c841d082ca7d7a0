# tests/services/test_query_builder.py
import pytest

from devcamper.errors import ValidationError
from devcamper.models import Bootcamp, Course
from devcamper.services.query_builder import QueryBuilder, QueryRequest
from devcamper.services.store import Store


@pytest.fixture
def builder():
    return QueryBuilder(default_limit=25, max_limit=100)


def test_from_params_strips_meta_keys_and_parses_operators():
    request = QueryRequest.from_params({
        "select": "name,description",
        "sort": "-average_cost,name",
        "page": "2",
        "limit": "10",
        "average_cost[lte]": "10000",
        "average_cost[gt]": "500",
        "housing": "true",
    })

    assert request.filters == {
        "average_cost": {"lte": "10000", "gt": "500"},
        "housing": "true",
    }
    assert request.select == ["name", "description"]
    assert request.sort == [("average_cost", True), ("name", False)]
    assert request.page == 2
    assert request.limit == 10


def test_unknown_bracket_content_is_a_literal_key():
    request = QueryRequest.from_params({"tuition[between]": "5", "tuition[]": "7"})
    assert request.filters == {"tuition[between]": "5", "tuition[]": "7"}


def test_select_tokens_are_trimmed():
    request = QueryRequest.from_params({"select": " name , description,,"})
    assert request.select == ["name", "description"]


@pytest.mark.parametrize("page,limit", [
    ("abc", "-3"),
    ("0", "0"),
    (None, None),
    ("1.5", "ten"),
])
def test_page_and_limit_fall_back_to_defaults(page, limit):
    params = {key: value for key, value in {"page": page, "limit": limit}.items() if value is not None}
    request = QueryRequest.from_params(params)
    assert (request.page, request.limit) == (1, 25)


def test_build_computes_skip_and_clamps_limit(builder):
    query = builder.build(Bootcamp, QueryRequest(page=3, limit=10))
    assert query.skip == 20

    clamped = builder.build(Bootcamp, QueryRequest(page=1, limit=500))
    assert clamped.limit == 100


def test_huge_page_keeps_offset_in_integer_range(builder, db_session, sample_bootcamp):
    query = builder.build(Bootcamp, QueryRequest.from_params({"page": "1" + "0" * 20, "limit": "25"}))
    assert 0 < query.skip <= 2 ** 63 - 1
    assert query.limit == 25

    assert Store(db_session).collection("bootcamps").find(query) == []


def test_default_sort_is_newest_first_with_insertion_tiebreak(builder):
    query = builder.build(Bootcamp, QueryRequest())
    assert query.order == [("created_at", True), ("id", False)]


def test_unknown_sort_and_select_fields_are_ignored(builder):
    query = builder.build(Bootcamp, QueryRequest(select=["name", "nope"], sort=[("nope", True), ("name", False)]))
    assert query.projection == ["id", "name"]
    assert query.order == [("name", False), ("id", False)]


def test_filters_are_applied_against_the_store(builder, db_session, make_bootcamp):
    make_bootcamp("Cheap Camp", average_cost=4000)
    make_bootcamp("Mid Camp", average_cost=9000)
    make_bootcamp("Pricey Camp", average_cost=15000, housing=False)

    store = Store(db_session).collection("bootcamps")
    request = QueryRequest.from_params({"average_cost[gte]": "5000", "average_cost[lt]": "15000"})
    names = [b.name for b in store.find(builder.build(Bootcamp, request))]
    assert names == ["Mid Camp"]

    request = QueryRequest.from_params({"housing": "false"})
    names = [b.name for b in store.find(builder.build(Bootcamp, request))]
    assert names == ["Pricey Camp"]

    request = QueryRequest.from_params({"name[in]": "Cheap Camp,Pricey Camp", "sort": "name"})
    names = [b.name for b in store.find(builder.build(Bootcamp, request))]
    assert names == ["Cheap Camp", "Pricey Camp"]


def test_enum_filter_is_coerced(builder, db_session, sample_bootcamp, make_course):
    make_course(sample_bootcamp, title="Intro", minimum_skill="beginner")
    make_course(sample_bootcamp, title="Deep Dive", minimum_skill="advanced")

    store = Store(db_session).collection("courses")
    request = QueryRequest.from_params({"minimum_skill": "advanced"})
    assert [c.title for c in store.find(builder.build(Course, request))] == ["Deep Dive"]


def test_unknown_filter_field_matches_nothing(builder, db_session, sample_bootcamp):
    store = Store(db_session).collection("bootcamps")
    for params in ({"colour": "blue"}, {"average_cost[between]": "5"}):
        query = builder.build(Bootcamp, QueryRequest.from_params(params))
        assert store.find(query) == []


def test_uncastable_filter_value_is_a_validation_error(builder):
    request = QueryRequest.from_params({"average_cost[gt]": "cheap"})
    with pytest.raises(ValidationError, match="average_cost"):
        builder.build(Bootcamp, request)


@pytest.mark.parametrize("params", [
    {"careers": "Business"},
    {"careers[in]": "Business,UI/UX"},
])
def test_json_fields_cannot_be_filtered(builder, params):
    with pytest.raises(ValidationError, match="careers"):
        builder.build(Bootcamp, QueryRequest.from_params(params))


def test_results_respect_limit_and_sort_with_insertion_tiebreak(builder, db_session, make_bootcamp):
    costs = [5000, 3000, 5000, 1000, 3000, 5000, 2000]
    created = [make_bootcamp(f"Camp {i}", average_cost=cost) for i, cost in enumerate(costs)]

    store = Store(db_session).collection("bootcamps")
    query = builder.build(Bootcamp, QueryRequest.from_params({"sort": "-average_cost", "limit": "5"}))
    results = store.find(query)

    assert len(results) <= 5
    expected = sorted(created, key=lambda b: (-b.average_cost, b.id))[:5]
    assert [b.id for b in results] == [b.id for b in expected]


def test_scope_adds_equality_predicates(builder, db_session, make_bootcamp, make_course):
    first = make_bootcamp("First Camp")
    second = make_bootcamp("Second Camp")
    make_course(first, title="A")
    make_course(second, title="B")

    store = Store(db_session).collection("courses")
    query = builder.build(Course, QueryRequest(), scope={"bootcamp_id": second.id})
    assert [c.title for c in store.find(query)] == ["B"]
