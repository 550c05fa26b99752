from __future__ import annotations

import re

import pytest

from jobly.services.repository import INT4_MAX, RepositoryValidationError
from jobly.services.sql import (
    COMPANY_FILTERS,
    JOB_FILTERS,
    QueryParams,
    build_predicate,
    compile_partial_update,
    escape_like,
    quote_identifier,
)

PLACEHOLDER_RE = re.compile(r"\$(\d+)")


def _placeholders(sql: str) -> list[int]:
    return [int(match) for match in PLACEHOLDER_RE.findall(sql)]


def test_predicate_without_filters_matches_every_row() -> None:
    predicate = build_predicate({}, COMPANY_FILTERS)

    assert predicate.terms == []
    assert predicate.values == []
    assert predicate.sql == "true"


def test_predicate_name_filter_is_bound_case_insensitive_contains() -> None:
    predicate = build_predicate({"name": "net"}, COMPANY_FILTERS)

    assert predicate.sql == "name ilike $1"
    assert predicate.values == ["%net%"]


def test_predicate_combines_filters_with_and_in_field_order() -> None:
    predicate = build_predicate(
        {"maxEmployees": "50", "name": "c", "minEmployees": 10},
        COMPANY_FILTERS,
    )

    assert predicate.sql == "name ilike $1 and num_employees >= $2 and num_employees <= $3"
    assert predicate.values == ["%c%", 10, 50]


def test_predicate_rejects_min_greater_than_max() -> None:
    with pytest.raises(RepositoryValidationError, match="minEmployees cannot be greater than maxEmployees"):
        build_predicate({"minEmployees": "50", "maxEmployees": "10"}, COMPANY_FILTERS)


def test_predicate_accepts_equal_min_and_max() -> None:
    predicate = build_predicate({"minEmployees": "10", "maxEmployees": "10"}, COMPANY_FILTERS)
    assert predicate.values == [10, 10]


@pytest.mark.parametrize("raw", ["abc", "-1", "1.5", "12abc", True, 2.0, "٣"])
def test_predicate_rejects_malformed_numeric_filters(raw: object) -> None:
    with pytest.raises(RepositoryValidationError, match="minSalary must be a non-negative integer"):
        build_predicate({"minSalary": raw}, JOB_FILTERS)


def test_predicate_rejects_negative_integer_filter() -> None:
    with pytest.raises(RepositoryValidationError):
        build_predicate({"maxEmployees": -5}, COMPANY_FILTERS)


@pytest.mark.parametrize(
    ("name", "fields"),
    [("minEmployees", COMPANY_FILTERS), ("maxEmployees", COMPANY_FILTERS), ("minSalary", JOB_FILTERS)],
)
@pytest.mark.parametrize("raw", [str(2**31), 2**31, "99999999999"])
def test_predicate_rejects_numbers_beyond_integer_column(name: str, fields: tuple, raw: object) -> None:
    with pytest.raises(RepositoryValidationError, match=f"{name} must be a non-negative integer no greater than"):
        build_predicate({name: raw}, fields)


def test_predicate_accepts_integer_column_maximum() -> None:
    predicate = build_predicate({"minSalary": str(INT4_MAX)}, JOB_FILTERS)
    assert predicate.values == [INT4_MAX]


def test_predicate_parses_padded_numeric_string() -> None:
    predicate = build_predicate({"minSalary": " 50000 "}, JOB_FILTERS)

    assert predicate.sql == "j.salary >= $1"
    assert predicate.values == [50000]


def test_predicate_ignores_none_and_blank_values() -> None:
    predicate = build_predicate({"title": "  ", "minSalary": None, "hasEquity": ""}, JOB_FILTERS)
    assert predicate.sql == "true"
    assert predicate.values == []


def test_predicate_rejects_unknown_filter_names() -> None:
    with pytest.raises(RepositoryValidationError, match="unsupported filters: handle"):
        build_predicate({"handle": "c1"}, COMPANY_FILTERS)

    with pytest.raises(RepositoryValidationError, match="unsupported filters: minEmployees"):
        build_predicate({"minEmployees": "3"}, JOB_FILTERS)


@pytest.mark.parametrize("raw", [True, "true", "TRUE", "1", "yes"])
def test_predicate_has_equity_true_requires_positive_equity(raw: object) -> None:
    predicate = build_predicate({"hasEquity": raw}, JOB_FILTERS)

    assert predicate.sql == "j.equity > 0"
    assert predicate.values == []


@pytest.mark.parametrize("raw", [False, "false", "0", "no"])
def test_predicate_has_equity_false_adds_no_constraint(raw: object) -> None:
    predicate = build_predicate({"hasEquity": raw}, JOB_FILTERS)
    assert predicate.sql == "true"


def test_predicate_rejects_unparseable_flag() -> None:
    with pytest.raises(RepositoryValidationError, match="hasEquity must be true or false"):
        build_predicate({"hasEquity": "sometimes"}, JOB_FILTERS)


def test_predicate_never_places_client_text_in_sql() -> None:
    hostile = "x'; drop table jobs; --"
    predicate = build_predicate({"title": hostile, "minSalary": "1", "hasEquity": "true"}, JOB_FILTERS)

    assert "drop" not in predicate.sql
    assert "'" not in predicate.sql
    assert predicate.sql == "j.title ilike $1 and j.salary >= $2 and j.equity > 0"
    assert predicate.values == [f"%{hostile}%", 1]


def test_predicate_escapes_like_wildcards() -> None:
    predicate = build_predicate({"name": "50%_off\\"}, COMPANY_FILTERS)
    assert predicate.values == ["%50\\%\\_off\\\\%"]


@pytest.mark.parametrize(
    "filters",
    [
        {"title": "eng"},
        {"minSalary": "10"},
        {"title": "eng", "minSalary": "10"},
        {"title": "eng", "hasEquity": "true", "minSalary": "10"},
        {"hasEquity": "true", "minSalary": "10"},
    ],
)
def test_predicate_placeholders_line_up_with_values(filters: dict[str, str]) -> None:
    predicate = build_predicate(filters, JOB_FILTERS)
    assert _placeholders(predicate.sql) == list(range(1, len(predicate.values) + 1))


def test_predicate_continues_numbering_from_shared_params() -> None:
    params = QueryParams()
    params.bind("already-bound")

    predicate = build_predicate({"name": "a", "minEmployees": "2"}, COMPANY_FILTERS, params)

    assert predicate.sql == "name ilike $2 and num_employees >= $3"
    assert predicate.values == ["%a%", 2]
    assert params.values == ["already-bound", "%a%", 2]


def test_partial_update_translates_names_and_keeps_order() -> None:
    assignment = compile_partial_update({"firstName": "Aliya", "age": 32}, {"firstName": "first_name"})

    assert assignment.sql == '"first_name" = $1, "age" = $2'
    assert assignment.values == ["Aliya", 32]


def test_partial_update_falls_back_to_field_name() -> None:
    assignment = compile_partial_update({"firstName": "Aliya", "age": 32}, {})
    assert assignment.terms == ['"firstName" = $1', '"age" = $2']


def test_partial_update_rejects_empty_input() -> None:
    with pytest.raises(RepositoryValidationError, match="no data"):
        compile_partial_update({}, {"numEmployees": "num_employees"})


def test_partial_update_sizes_match_input() -> None:
    fields = {"name": "New", "description": None, "numEmployees": 7, "logoUrl": "http://x"}
    assignment = compile_partial_update(fields, {"numEmployees": "num_employees", "logoUrl": "logo_url"})

    assert len(assignment.terms) == len(assignment.values) == len(fields)
    assert assignment.values == ["New", None, 7, "http://x"]
    assert _placeholders(assignment.sql) == [1, 2, 3, 4]


def test_partial_update_leaves_room_for_row_key_placeholder() -> None:
    params = QueryParams()
    assignment = compile_partial_update({"title": "T", "salary": 5}, {}, params)
    key_token = params.bind(42)

    assert assignment.sql == '"title" = $1, "salary" = $2'
    assert key_token == "$3"
    assert params.values == ["T", 5, 42]


def test_quote_identifier_doubles_embedded_quotes() -> None:
    assert quote_identifier('we"ird') == '"we""ird"'


def test_escape_like_handles_backslash_first() -> None:
    assert escape_like("a\\%") == "a\\\\\\%"
