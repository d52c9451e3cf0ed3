"""
Query Builder Module

Builds the SOQL statements issued by the finder.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

from simple_salesforce import format_soql

from .entities import EntityKind, is_valid_field_name


@dataclass(frozen=True)
class Equals:
    """field = 'value'"""

    field: str
    value: Any


@dataclass(frozen=True)
class Contains:
    """field LIKE '%value%'"""

    field: str
    value: str


@dataclass(frozen=True)
class AnyOf:
    """OR of the given filters."""

    filters: Tuple[Union[Equals, Contains], ...]


Filter = Union[Equals, Contains, AnyOf]


def _check_field(name: str) -> str:
    if not is_valid_field_name(name):
        raise ValueError(f"invalid field name {name!r}")
    return name


def render_filter(flt: Filter) -> str:
    """Return the WHERE clause body for a filter, with values escaped."""
    if isinstance(flt, Equals):
        return format_soql("{:literal} = {}", _check_field(flt.field), flt.value)
    if isinstance(flt, Contains):
        return format_soql("{:literal} LIKE '%{:like}%'", _check_field(flt.field), flt.value)
    if isinstance(flt, AnyOf):
        if not flt.filters:
            raise ValueError("empty filter list")
        if len(flt.filters) == 1:
            return render_filter(flt.filters[0])
        return '(' + ' OR '.join(render_filter(f) for f in flt.filters) + ')'
    raise TypeError(f"unsupported filter {flt!r}")


def build(kind: EntityKind, fields: Sequence[str], flt: Filter,
          order_by: Optional[str] = None) -> str:
    """
    Build a SOQL query.

    Args:
        kind: Object to select from
        fields: Fields to select, emitted in the given order
        flt: Filter for the WHERE clause
        order_by: Optional field to sort on

    Returns:
        SOQL query string
    """
    if not fields:
        raise ValueError(f"no fields requested for {kind}")
    fields_str = ', '.join(_check_field(f) for f in fields)
    soql = f"SELECT {fields_str} FROM {kind.value} WHERE {render_filter(flt)}"
    if order_by:
        soql += f" ORDER BY {_check_field(order_by)}"
    return soql
