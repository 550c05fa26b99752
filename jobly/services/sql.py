"""SQL fragments built from sparse client input.

Every client value goes through ``QueryParams.bind``, which appends the value
and hands back its ``$n`` placeholder in one step. Fragment text therefore only
ever contains column names chosen by this module and placeholders.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from jobly.services.repository import RepositoryValidationError, coerce_non_negative_int, coerce_text

FilterOp = Literal["contains", "gte", "lte", "positive"]

TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(slots=True)
class QueryParams:
    values: list[Any] = field(default_factory=list)

    def bind(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


@dataclass(frozen=True, slots=True)
class FilterField:
    name: str
    column: str
    op: FilterOp


@dataclass(slots=True)
class Predicate:
    terms: list[str]
    values: list[Any]

    @property
    def sql(self) -> str:
        return " and ".join(self.terms) if self.terms else "true"


@dataclass(slots=True)
class Assignment:
    terms: list[str]
    values: list[Any]

    @property
    def sql(self) -> str:
        return ", ".join(self.terms)


COMPANY_FILTERS: tuple[FilterField, ...] = (
    FilterField("name", "name", "contains"),
    FilterField("minEmployees", "num_employees", "gte"),
    FilterField("maxEmployees", "num_employees", "lte"),
)

JOB_FILTERS: tuple[FilterField, ...] = (
    FilterField("title", "j.title", "contains"),
    FilterField("minSalary", "j.salary", "gte"),
    FilterField("hasEquity", "j.equity", "positive"),
)


def build_predicate(
    filters: Mapping[str, Any],
    fields: tuple[FilterField, ...],
    params: QueryParams | None = None,
) -> Predicate:
    """Translate recognized filters into an AND-combined predicate.

    Absent, ``None`` and blank values add no term. With no terms the predicate
    is ``true``. Pass ``params`` to continue placeholder numbering from an
    enclosing query.
    """
    by_name = {item.name: item for item in fields}
    unknown = sorted(set(filters) - set(by_name))
    if unknown:
        raise RepositoryValidationError(f"unsupported filters: {', '.join(unknown)}")

    params = params if params is not None else QueryParams()
    first_value = len(params.values)
    terms: list[str] = []
    lower_bounds: dict[str, tuple[str, int]] = {}
    upper_bounds: dict[str, tuple[str, int]] = {}

    for item in fields:
        raw = filters.get(item.name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue

        if item.op == "contains":
            text = coerce_text(raw)
            terms.append(f"{item.column} ilike {params.bind(f'%{escape_like(text)}%')}")
        elif item.op in ("gte", "lte"):
            bound = coerce_non_negative_int(raw, field=item.name)
            if item.op == "gte":
                lower_bounds[item.column] = (item.name, bound)
                terms.append(f"{item.column} >= {params.bind(bound)}")
            else:
                upper_bounds[item.column] = (item.name, bound)
                terms.append(f"{item.column} <= {params.bind(bound)}")
        elif item.op == "positive":
            if _coerce_flag(raw, field=item.name):
                terms.append(f"{item.column} > 0")

    for column, (min_name, minimum) in lower_bounds.items():
        if column not in upper_bounds:
            continue
        max_name, maximum = upper_bounds[column]
        if minimum > maximum:
            raise RepositoryValidationError(f"{min_name} cannot be greater than {max_name}")

    return Predicate(terms=terms, values=params.values[first_value:])


def compile_partial_update(
    fields_to_set: Mapping[str, Any],
    translation: Mapping[str, str],
    params: QueryParams | None = None,
) -> Assignment:
    """Build the SET list for a partial update.

    Columns are ``translation[name]`` when present, otherwise ``name``. Terms
    and values follow the insertion order of ``fields_to_set``. Value types are
    the caller's concern.
    """
    if not fields_to_set:
        raise RepositoryValidationError("no data")

    params = params if params is not None else QueryParams()
    first_value = len(params.values)
    terms = [
        f"{quote_identifier(translation.get(name, name))} = {params.bind(value)}"
        for name, value in fields_to_set.items()
    ]
    return Assignment(terms=terms, values=params.values[first_value:])


def quote_identifier(name: str) -> str:
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _coerce_flag(value: Any, *, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_STRINGS:
            return True
        if normalized in FALSE_STRINGS:
            return False
    raise RepositoryValidationError(f"{field} must be true or false")
