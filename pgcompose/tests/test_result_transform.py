from decimal import Decimal

import pytest

from pgcompose import parent, sql
from pgcompose.errors import NotExactlyOneError, NumericCoercionError
from pgcompose.results import QueryResult, coerce_numeric
from pgcompose.shortcuts import (
    count,
    deletes,
    insert,
    select,
    select_exactly_one,
    select_one,
    truncate,
    update,
    upsert,
)


def rows(*results):
    return {"rows": [{"result": result} for result in results]}


# ==================================================
# Mutations
# ==================================================

def test_insert_single_returns_first_result():
    query = insert("users", {"name": "John"})
    assert query.run_result_transform(rows({"id": 1, "name": "John"})) == {"id": 1, "name": "John"}


def test_insert_single_with_no_rows_returns_none():
    assert insert("users", {"name": "John"}).run_result_transform(rows()) is None


def test_insert_many_returns_list():
    query = insert("users", [{"name": "A"}, {"name": "B"}])
    assert query.run_result_transform(rows({"id": 1}, {"id": 2})) == [{"id": 1}, {"id": 2}]


def test_noop_insert_transforms_to_empty_list():
    assert insert("users", []).run_result_transform(QueryResult()) == []


def test_update_and_delete_return_lists():
    assert update("users", {"a": 1}, {"id": 1}).run_result_transform(rows()) == []
    assert deletes("users", {"id": 1}).run_result_transform(rows({"id": 1})) == [{"id": 1}]


def test_upsert_single_do_nothing_conflict_returns_none():
    assert upsert("users", {"email": "x"}, "email").run_result_transform(rows()) is None


def test_truncate_returns_none():
    assert truncate("users").run_result_transform(QueryResult(command="TRUNCATE TABLE")) is None


def test_transform_accepts_query_result_and_tuple_rows():
    query = insert("users", [{"name": "A"}])
    assert query.run_result_transform(QueryResult(rows=[({"id": 1},)])) == [{"id": 1}]


# ==================================================
# Selections
# ==================================================

def test_select_returns_array():
    assert select("users").run_result_transform(rows([{"id": 1}])) == [{"id": 1}]


def test_select_with_missing_row_returns_empty_list():
    assert select("users").run_result_transform(rows()) == []


def test_select_one_without_match_returns_none():
    assert select_one("users", {"id": 1}).run_result_transform(rows()) is None


def test_select_exactly_one_without_match_raises():
    query = select_exactly_one("users", {"id": 1})
    with pytest.raises(NotExactlyOneError, match="One result expected but none returned") as info:
        query.run_result_transform(rows())
    assert info.value.query is query
    assert info.value.path == ()
    assert info.value.query.compile().values == [1, 1]


def test_select_exactly_one_with_row_returns_it():
    query = select_exactly_one("users", {"id": 1})
    assert query.run_result_transform(rows({"id": 1})) == {"id": 1}


def test_nested_exactly_one_lateral_raises_for_any_null_row():
    query = select("authors", lateral={"best": select_exactly_one("posts", {"author_id": parent("id")})})
    result = rows([
        {"id": 1, "best": {"id": 10}},
        {"id": 2, "best": None},
    ])
    with pytest.raises(NotExactlyOneError, match="nested lateral") as info:
        query.run_result_transform(result)
    assert info.value.path == (1, "best")


def test_nested_exactly_one_lateral_passes_when_all_present():
    query = select("authors", lateral={"best": select_exactly_one("posts", {"author_id": parent("id")})})
    value = [{"id": 1, "best": {"id": 10}}, {"id": 2, "best": {"id": 20}}]
    assert query.run_result_transform(rows(value)) == value


def test_nested_select_one_lateral_may_be_null():
    query = select("authors", lateral={"latest": select_one("posts", {"author_id": parent("id")})})
    value = [{"id": 1, "latest": None}]
    assert query.run_result_transform(rows(value)) == value


def test_deeply_nested_exactly_one_lateral():
    comments = select_exactly_one("comments", {"post_id": parent("id")})
    posts = select("posts", {"author_id": parent("id")}, lateral={"first_comment": comments})
    query = select_one("authors", {"id": 1}, lateral={"posts": posts})
    ok = {"id": 1, "posts": [{"id": 5, "first_comment": {"id": 9}}]}
    bad = {"id": 1, "posts": [{"id": 5, "first_comment": {"id": 9}}, {"id": 6, "first_comment": None}]}

    assert query.run_result_transform(rows(ok)) == ok
    with pytest.raises(NotExactlyOneError) as info:
        query.run_result_transform(rows(bad))
    assert info.value.path == ("posts", 1, "first_comment")


def test_passthrough_exactly_one_lateral_raises_on_null():
    query = select("likes", {"user_id": 7}, lateral=select_exactly_one("books", {"id": parent("book_id")}))
    with pytest.raises(NotExactlyOneError):
        query.run_result_transform(rows([{"id": 1}, None]))


def test_single_row_passthrough_exactly_one_raises_when_lateral_is_empty():
    query = select_one("likes", {"id": 1}, lateral=select_exactly_one("books", {"id": parent("book_id")}))
    with pytest.raises(NotExactlyOneError, match="One nested lateral result expected") as info:
        query.run_result_transform(rows(None))
    assert info.value.query is query


def test_single_row_passthrough_without_outer_row_returns_none():
    query = select_one("likes", {"id": 1}, lateral=select_exactly_one("books", {"id": parent("book_id")}))
    assert query.run_result_transform({"rows": []}) is None


def test_single_row_passthrough_select_one_allows_empty_lateral():
    query = select_one("likes", {"id": 1}, lateral=select_one("books", {"id": parent("book_id")}))
    assert query.run_result_transform(rows(None)) is None


def test_passthrough_lateral_returns_value():
    query = select("likes", {"user_id": 7}, lateral=select_exactly_one("books", {"id": parent("book_id")}))
    assert query.run_result_transform(rows([{"id": 1, "title": "Dune"}])) == [{"id": 1, "title": "Dune"}]


def test_fragment_lateral_is_not_checked():
    query = select("authors", lateral={"n": sql("SELECT 1 AS result")})
    assert query.run_result_transform(rows([{"id": 1, "n": None}])) == [{"id": 1, "n": None}]


# ==================================================
# Aggregates
# ==================================================

def test_count_text_result_becomes_int():
    value = count("users").run_result_transform(rows("42"))
    assert value == 42
    assert isinstance(value, int)


def test_count_without_rows_is_none():
    assert count("users").run_result_transform(rows()) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        (7, 7),
        (2.5, 2.5),
        ("42", 42),
        (" 12 ", 12),
        ("2.50", 2.5),
        ("10.000", 10),
        (Decimal("3"), 3),
        (Decimal("1.25"), 1.25),
        ("Infinity", float("inf")),
    ],
)
def test_coerce_numeric(raw, expected):
    value = coerce_numeric(raw)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize("raw", ["NaN", float("nan"), Decimal("NaN"), "abc", True, object()])
def test_coerce_numeric_rejects(raw):
    with pytest.raises(NumericCoercionError):
        coerce_numeric(raw)
