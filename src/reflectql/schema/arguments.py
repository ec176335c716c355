"""Classification of callable signatures into resolver slots.

Example signature mapping::

    class Query:
        def get_widget(self, ctx: Context, info: GraphQLResolveInfo, args: WidgetArgs) -> tuple[Widget, Exception | None]:
            ...

``self`` is the source slot, ``ctx`` the request context, ``info`` the query metadata,
``args`` the typed input, ``Widget`` the output and ``Exception | None`` the error slot.
Parameters may come in any order; only their types decide their role.
"""

import inspect
import typing
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from typing import Any

from reflectql.errors import (
    AmbiguousInputError,
    AmbiguousOutputError,
    InvalidInputShapeError,
    InvalidOutputShapeError,
    InvalidReceiverError,
    MissingOutputError,
    TooManyArgumentsError,
    TooManyReturnsError,
)
from reflectql.schema.annotation import DEFAULT_TAG_KEY, has_annotated_fields
from reflectql.schema.markers import Context, ErrorCarrier, ResolveInfo
from reflectql.schema.typing_utils import (
    NoneType,
    collection_element,
    dereference,
    display_name,
    is_mapping_type,
    is_struct,
    strip_annotated,
    type_hints,
)

MAX_UNBOUND_ARGUMENTS = 3
MAX_BOUND_ARGUMENTS = 4
MAX_RETURNS = 2

SCALAR_CLASSES = (bool, int, float, str, bytes)

POSITIONAL_KINDS = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True)
class ArgumentSlotInfo:
    """One parameter or return value of a classified callable."""

    declared_type: Any
    dereferenced_type: Any
    index: int
    is_pointer: bool = False
    is_collection: bool = False

    @classmethod
    def from_type(cls, declared_type: Any, index: int) -> "ArgumentSlotInfo":
        dereferenced_type, is_pointer, is_collection = dereference(declared_type)
        return cls(
            declared_type=declared_type,
            dereferenced_type=dereferenced_type,
            index=index,
            is_pointer=is_pointer,
            is_collection=is_collection,
        )


@dataclass(frozen=True)
class CallableClassification:
    func: Callable[..., Any]
    bound: bool
    parameter_count: int
    return_count: int
    source: ArgumentSlotInfo | None = None
    context: ArgumentSlotInfo | None = None
    metadata: ArgumentSlotInfo | None = None
    input: ArgumentSlotInfo | None = None
    output: ArgumentSlotInfo | None = None
    error: ArgumentSlotInfo | None = None
    is_async: bool = field(default=False)

    @property
    def name(self) -> str:
        return self.func.__name__

    def roles(self) -> dict[str, Any]:
        """Map each occupied role to its declared type, independent of parameter positions."""
        slots = {
            "source": self.source,
            "context": self.context,
            "metadata": self.metadata,
            "input": self.input,
            "output": self.output,
            "error": self.error,
        }
        return {role: slot.declared_type for role, slot in slots.items() if slot is not None}


def is_object_class(tp: Any) -> bool:
    """Check whether a type can host resolver methods, i.e. a class that is not a scalar or container."""
    if not isinstance(tp, type) or issubclass(tp, SCALAR_CLASSES):
        return False
    return not is_mapping_type(tp) and collection_element(tp) is None


def is_error_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, ErrorCarrier)


def return_types(hints: dict[str, Any]) -> list[Any]:
    """Split a return annotation into the list of returned values.

    ``None`` (or no annotation) means nothing is returned, ``tuple[A, B]`` two values and
    any other annotation, ``tuple[T, ...]`` included, a single value.
    """
    if "return" not in hints:
        return []
    returned = strip_annotated(hints["return"])
    if returned is None or returned is NoneType:
        return []
    if typing.get_origin(returned) is tuple:
        args = typing.get_args(returned)
        if not (len(args) == 2 and args[1] is Ellipsis):
            return list(args)
    return [returned]


def classify_callable(
    func: Callable[..., Any],
    *,
    bound: bool,
    receiver: type | None = None,
    context_types: Collection[Any] = (Context,),
    tag_key: str = DEFAULT_TAG_KEY,
) -> CallableClassification:
    """
    Assign every parameter and return value of a callable to a resolver slot.

    Args:
        func: The function to classify. For bound callables this is the plain function
            whose first parameter is the receiver.
        bound: Whether the first parameter is a receiver
        receiver: The class owning the method, used when the receiver is not annotated
        context_types: Marker types identifying the request-context parameter
        tag_key: Metadata key of field annotations, used to validate input and output shapes

    Returns:
        CallableClassification: The slot assignment

    Raises:
        ClassificationError: If the signature cannot be used as a resolver
    """
    name = getattr(func, "__qualname__", repr(func))
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise InvalidReceiverError(f"Cannot inspect the signature of {name}: {e}") from e

    hints = type_hints(func)
    parameters = list(signature.parameters.values())
    returns = return_types(hints)

    for parameter in parameters:
        if parameter.kind not in POSITIONAL_KINDS:
            raise InvalidInputShapeError(f"Resolver {name} can only take positional parameters, got '{parameter.name}'")

    source = None
    if bound:
        if not parameters:
            raise InvalidReceiverError(f"Resolver method {name} should have a receiver")
        receiver_type = hints.get(parameters[0].name, receiver)
        source = ArgumentSlotInfo.from_type(receiver_type, 0)
        if not is_object_class(source.dereferenced_type):
            raise InvalidReceiverError(f"Resolver method {name} should be hosted on a class, got {receiver_type!r}")

    max_arguments = MAX_BOUND_ARGUMENTS if bound else MAX_UNBOUND_ARGUMENTS
    if len(parameters) > max_arguments:
        raise TooManyArgumentsError(f"Resolver {name} should have at most {max_arguments} arguments")

    if len(returns) > MAX_RETURNS:
        raise TooManyReturnsError(f"Resolver {name} should have at most {MAX_RETURNS} return values")

    context = metadata = input_slot = None
    for index in range(1 if bound else 0, len(parameters)):
        slot = ArgumentSlotInfo.from_type(hints.get(parameters[index].name, Any), index)
        if slot.dereferenced_type in context_types:
            if context is not None:
                raise AmbiguousInputError(f"Expected at most one context parameter in {name}")
            context = slot
        elif slot.dereferenced_type is ResolveInfo:
            if metadata is not None:
                raise AmbiguousInputError(f"Expected at most one resolve info parameter in {name}")
            metadata = slot
        elif input_slot is None:
            input_slot = slot
        else:
            raise AmbiguousInputError(f"Expected at most one input type in {name}, got {display_name(slot.declared_type)}")

    output = error = None
    for index, returned in enumerate(returns):
        slot = ArgumentSlotInfo.from_type(returned, index)
        if is_error_type(slot.dereferenced_type):
            error = slot
        elif output is None:
            output = slot
        else:
            raise AmbiguousOutputError(f"Expected at most one output type in {name}, got {display_name(returned)}")

    classification = CallableClassification(
        func=func,
        bound=bound,
        parameter_count=len(parameters),
        return_count=len(returns),
        source=source,
        context=context,
        metadata=metadata,
        input=input_slot,
        output=output,
        error=error,
        is_async=inspect.iscoroutinefunction(func),
    )
    validate_classification(classification, tag_key)
    return classification


def validate_classification(classification: CallableClassification, tag_key: str = DEFAULT_TAG_KEY) -> None:
    name = getattr(classification.func, "__qualname__", classification.name)
    input_slot = classification.input
    if input_slot is not None:
        if not is_struct(input_slot.dereferenced_type) or input_slot.is_collection:
            raise InvalidInputShapeError(
                f"Input type of {name} should be a dataclass, got {display_name(input_slot.declared_type)}"
            )
        if not has_annotated_fields(input_slot.dereferenced_type, tag_key):
            raise InvalidInputShapeError(f"Input type of {name} should have at least one annotated field")

    output = classification.output
    if output is not None and is_struct(output.dereferenced_type):
        if not has_annotated_fields(output.dereferenced_type, tag_key):
            raise InvalidOutputShapeError(f"Output type of {name} should have at least one annotated field")

    if not classification.bound and output is None:
        raise MissingOutputError(f"Resolver {name} should have an output return value")
