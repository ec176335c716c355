"""Marker types and opt-in capabilities recognised by the schema builder.

Resolver parameters are classified by type identity: a parameter annotated with
``Context`` receives the request context, one annotated with ``GraphQLResolveInfo``
receives the query metadata, and returned ``Exception`` values are treated as errors.
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

from graphql import GraphQLResolveInfo

RESOLVES_ATTRIBUTE = "__reflectql_resolves__"

ResolveInfo = GraphQLResolveInfo
ErrorCarrier = Exception

F = TypeVar("F", bound=Callable[..., Any])


class Context(dict[str, Any]):
    """Request-scoped values handed to resolvers, passed through unmodified.

    Any object given as ``context_value`` to the execution engine reaches a parameter
    annotated with this type; subclassing ``dict`` only makes it convenient to build one.
    """


@runtime_checkable
class NamedSchemaType(Protocol):
    """Types implementing this protocol choose their own schema type name."""

    @classmethod
    def graphql_type_name(cls) -> str: ...


def resolves(field_name: str) -> Callable[[F], F]:
    """
    Mark a method as the resolver of an annotated field.

    The method replaces the plain attribute read of the field named ``field_name``
    (attribute name or exposed name). Classification failures of a marked method are
    reported instead of being skipped.

    Args:
        field_name: The field the decorated method resolves
    """

    def decorator(func: F) -> F:
        setattr(func, RESOLVES_ATTRIBUTE, field_name)
        return func

    return decorator


def resolved_field_of(func: Callable[..., Any]) -> str | None:
    return getattr(func, RESOLVES_ATTRIBUTE, None)
