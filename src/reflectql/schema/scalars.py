"""Custom scalars registered on every schema builder by default."""

import re
from datetime import date, datetime, timezone
from typing import Any

from graphql import GraphQLError, GraphQLScalarType, StringValueNode, ValueNode, print_ast


RFC3339_DATETIME = re.compile(r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d{1,6})?([Zz]|[+-]\d{2}:\d{2})")


def serialize_datetime(value: Any) -> str:
    if not isinstance(value, datetime):
        raise GraphQLError(f"DateTime cannot represent a non-datetime value: {value!r}")
    # naive values are taken as UTC so the output always carries an offset
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime_value(value: Any) -> datetime:
    if not isinstance(value, str):
        raise GraphQLError(f"DateTime cannot represent a non-string value: {value!r}")
    if not RFC3339_DATETIME.fullmatch(value):
        raise GraphQLError(f"DateTime expects an RFC 3339 timestamp with an offset, got: {value!r}")
    try:
        return datetime.fromisoformat(value.upper())
    except ValueError as e:
        raise GraphQLError(f"DateTime expects an RFC 3339 timestamp with an offset, got: {value!r}") from e


def parse_datetime_literal(value_node: ValueNode, _variables: dict[str, Any] | None = None) -> datetime:
    if not isinstance(value_node, StringValueNode):
        raise GraphQLError(f"DateTime cannot represent a non-string value: {print_ast(value_node)}", value_node)
    return parse_datetime_value(value_node.value)


def serialize_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if not isinstance(value, date):
        raise GraphQLError(f"Date cannot represent a non-date value: {value!r}")
    return value.isoformat()


def parse_date_value(value: Any) -> date:
    if not isinstance(value, str):
        raise GraphQLError(f"Date cannot represent a non-string value: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise GraphQLError(f"Date expects an ISO 8601 calendar date, got: {value!r}") from e


def parse_date_literal(value_node: ValueNode, _variables: dict[str, Any] | None = None) -> date:
    if not isinstance(value_node, StringValueNode):
        raise GraphQLError(f"Date cannot represent a non-string value: {print_ast(value_node)}", value_node)
    return parse_date_value(value_node.value)


GraphQLDateTime = GraphQLScalarType(
    name="DateTime",
    description="Date and time, serialized as an RFC 3339 timestamp",
    serialize=serialize_datetime,
    parse_value=parse_datetime_value,
    parse_literal=parse_datetime_literal,
    specified_by_url="https://datatracker.ietf.org/doc/html/rfc3339",
)

GraphQLDate = GraphQLScalarType(
    name="Date",
    description="Calendar date, serialized as an ISO 8601 date",
    serialize=serialize_date,
    parse_value=parse_date_value,
    parse_literal=parse_date_literal,
)

DEFAULT_SCALARS: dict[type, GraphQLScalarType] = {
    datetime: GraphQLDateTime,
    date: GraphQLDate,
}
