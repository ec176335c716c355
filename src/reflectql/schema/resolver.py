"""Resolver synthesis: call a classified function from a graphql-core field resolver."""

import dataclasses
import functools
import inspect
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any

from graphql import GraphQLResolveInfo
from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from reflectql.errors import CoercionError, ResolutionError
from reflectql.schema.annotation import DEFAULT_TAG_KEY, exposed_fields
from reflectql.schema.arguments import CallableClassification
from reflectql.schema.typing_utils import (
    collection_element,
    collection_origin,
    display_name,
    is_struct,
    strip_annotated,
    type_hints,
    unwrap_optional,
)

Outcome = tuple[Any, Any]


@functools.cache
def _leaf_adapter(tp: Any) -> TypeAdapter[Any] | None:
    try:
        return TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        return None


def coerce_value(tp: Any, raw: Any, tag_key: str = DEFAULT_TAG_KEY) -> Any:
    """
    Convert a raw request value into the shape declared by a type hint.

    Dataclasses are built field by field from a mapping keyed by exposed field names,
    collections element by element, ``Optional`` hints pass ``None`` through and leaf
    values are validated with pydantic in lax mode.

    Args:
        tp: The declared type
        raw: The value received from the execution engine
        tag_key: Metadata key of field annotations

    Returns:
        The coerced value

    Raises:
        CoercionError: If the value does not fit the declared type
    """
    tp = strip_annotated(tp)
    if tp is Any or tp is object:
        return raw

    inner, is_optional = unwrap_optional(tp)
    if is_optional:
        return None if raw is None else coerce_value(inner, raw, tag_key)
    if raw is None:
        return None

    if is_struct(tp):
        if isinstance(raw, tp):
            return raw
        if not isinstance(raw, Mapping):
            raise CoercionError(f"Expected a mapping to build {display_name(tp)}, got {type(raw).__name__}")
        return build_struct(tp, raw, tag_key)

    element = collection_element(tp)
    if element is not None:
        if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Iterable):
            raise CoercionError(f"Expected a list for {display_name(tp)}, got {type(raw).__name__}")
        container = collection_origin(tp)
        return container(coerce_value(element, item, tag_key) for item in raw)

    adapter = _leaf_adapter(tp)
    if adapter is None:
        return raw
    try:
        return adapter.validate_python(raw)
    except ValidationError as e:
        raise CoercionError(f"Invalid value for {display_name(tp)}: {e}", original_error=e) from e


def build_struct(cls: type, raw: Mapping[str, Any], tag_key: str = DEFAULT_TAG_KEY) -> Any:
    """Instantiate a dataclass from a mapping keyed by exposed field names."""
    hints = type_hints(cls)
    kwargs: dict[str, Any] = {}
    for field, annotation in exposed_fields(cls, tag_key):
        if annotation.exposed_name in raw and field.init:
            kwargs[field.name] = coerce_value(hints.get(field.name, Any), raw[annotation.exposed_name], tag_key)

    # fields absent from the request fall back to their defaults, or None
    for field in dataclasses.fields(cls):
        if not field.init or field.name in kwargs:
            continue
        if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
            kwargs[field.name] = None

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise CoercionError(f"Cannot build {display_name(cls)}: {e}", original_error=e) from e


class Resolver:
    """
    Field resolver bound to one classified callable.

    ``invoke`` follows the engine-independent contract
    ``(source, args, context, info) -> (output, error)``; calling the instance adapts it
    to graphql-core's ``resolve(source, info, **args)`` signature, raising returned errors.
    """

    def __init__(
        self,
        classification: CallableClassification,
        bound_receiver: Any = None,
        tag_key: str = DEFAULT_TAG_KEY,
    ) -> None:
        self.classification = classification
        self.bound_receiver = bound_receiver
        self.tag_key = tag_key

    def __repr__(self) -> str:
        return f"Resolver({self.classification.func.__qualname__})"

    def invoke(
        self, source: Any, args: Mapping[str, Any], context: Any, info: Any
    ) -> Outcome | Awaitable[Outcome]:
        classification = self.classification
        call_args: list[Any] = [None] * classification.parameter_count

        try:
            if classification.source is not None:
                receiver = self.receiver_from(source)
                if receiver is None:
                    return None, None
                call_args[0] = receiver

            if classification.input is not None:
                call_args[classification.input.index] = coerce_value(classification.input.declared_type, args, self.tag_key)
        except CoercionError as e:
            return None, e

        if classification.context is not None:
            call_args[classification.context.index] = context
        if classification.metadata is not None:
            call_args[classification.metadata.index] = info

        values = classification.func(*call_args)
        if inspect.isawaitable(values):
            return self._unpack_awaitable(values)
        return self.unpack(values)

    def receiver_from(self, source: Any) -> Any:
        if self.bound_receiver is not None:
            return self.bound_receiver
        if source is None:
            return None

        receiver_type = self.classification.source.dereferenced_type  # type: ignore[union-attr]
        if not isinstance(source, receiver_type) and isinstance(source, Mapping) and is_struct(receiver_type):
            return build_struct(receiver_type, source, self.tag_key)
        return source

    def unpack(self, values: Any) -> Outcome:
        """Split the returned values into the output and the error slot."""
        classification = self.classification
        if classification.return_count == 0:
            return None, None
        if classification.return_count == 1:
            values = (values,)
        elif not isinstance(values, tuple) or len(values) != classification.return_count:
            return None, ResolutionError(
                f"{classification.name} should return {classification.return_count} values, got {values!r}"
            )

        output = values[classification.output.index] if classification.output is not None else None
        error = values[classification.error.index] if classification.error is not None else None
        if error is not None:
            return None, error
        return output, None

    async def _unpack_awaitable(self, awaitable: Awaitable[Any]) -> Outcome:
        return self.unpack(await awaitable)

    def __call__(self, source: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        outcome = self.invoke(source, args, info.context, info)
        if inspect.isawaitable(outcome):
            return self._finish_awaitable(outcome)
        return self.finish(*outcome)

    async def _finish_awaitable(self, outcome: Awaitable[Outcome]) -> Any:
        return self.finish(*(await outcome))

    def finish(self, output: Any, error: Any) -> Any:
        if error is None:
            return output
        if isinstance(error, ResolutionError):
            raise error
        if isinstance(error, BaseException):
            raise ResolutionError(str(error), original_error=error) from error
        raise ResolutionError(f"{self.classification.name} returned a non-exception error value: {error!r}")


def attribute_resolver(attribute: str, key: str | None = None) -> Any:
    """Resolve a field by reading an attribute of the source.

    Mapping sources are read by ``key`` (the exposed field name) first, then by the attribute name.
    """

    def resolve(source: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        if source is None:
            return None
        if isinstance(source, Mapping):
            if key is not None and key in source:
                return source[key]
            return source.get(attribute)
        return getattr(source, attribute, None)

    return resolve
