"""Introspection helpers over Python type hints."""

import collections
import collections.abc
import dataclasses
import types
import typing
from typing import Any, Union

from reflectql.errors import UnsupportedTypeError

NoneType = type(None)

COLLECTION_ORIGINS = {
    list,
    tuple,
    set,
    frozenset,
    collections.deque,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
}

MAPPING_ORIGINS = {
    dict,
    collections.OrderedDict,
    collections.defaultdict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
}

ASYNC_STREAM_ORIGINS = {
    collections.abc.AsyncIterator,
    collections.abc.AsyncIterable,
    collections.abc.AsyncGenerator,
}


def strip_annotated(tp: Any) -> Any:
    if typing.get_origin(tp) is typing.Annotated:
        return typing.get_args(tp)[0]
    return tp


def is_union(tp: Any) -> bool:
    return typing.get_origin(tp) in (Union, types.UnionType)


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """
    Strip one ``Optional`` level from a type hint.

    Returns:
        tuple: The inner type and whether the hint was optional. Unions of several
        non-None members are returned unchanged.
    """
    tp = strip_annotated(tp)
    if not is_union(tp):
        return tp, False
    members = [arg for arg in typing.get_args(tp) if arg is not NoneType]
    if len(members) != 1:
        return tp, False
    return strip_annotated(members[0]), True


def collection_element(tp: Any) -> Any | None:
    """Return the element type of a homogeneous collection hint, or None when ``tp`` is not one."""
    tp = strip_annotated(tp)
    origin = typing.get_origin(tp)
    if origin is None:
        if tp in COLLECTION_ORIGINS:
            return Any
        return None
    if origin not in COLLECTION_ORIGINS:
        return None

    args = typing.get_args(tp)
    if origin is tuple:
        # only tuple[T, ...] is a collection, tuple[A, B] is a fixed record
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0]
        return None
    return args[0] if args else Any


def collection_origin(tp: Any) -> type:
    """The concrete container class to build for a collection hint."""
    origin = typing.get_origin(strip_annotated(tp)) or strip_annotated(tp)
    if origin in (tuple, set, frozenset, collections.deque):
        return origin
    if origin in (collections.abc.Set, collections.abc.MutableSet):
        return set
    return list


def is_mapping_type(tp: Any) -> bool:
    tp = strip_annotated(tp)
    origin = typing.get_origin(tp) or tp
    return origin in MAPPING_ORIGINS or (isinstance(origin, type) and issubclass(origin, dict))


def is_struct(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def async_stream_element(tp: Any) -> Any | None:
    tp = strip_annotated(tp)
    if typing.get_origin(tp) in ASYNC_STREAM_ORIGINS:
        args = typing.get_args(tp)
        return args[0] if args else Any
    return None


def dereference(tp: Any) -> tuple[Any, bool, bool]:
    """
    Strip one level of ``Optional`` or collection wrapping.

    Returns:
        tuple: ``(dereferenced_type, is_pointer, is_collection)``
    """
    inner, is_optional = unwrap_optional(tp)
    if is_optional:
        return inner, True, False
    element = collection_element(inner)
    if element is not None:
        return strip_annotated(element), False, True
    return inner, False, False


def type_hints(obj: Any) -> dict[str, Any]:
    """
    Resolve the type hints of a class or callable, including string annotations.

    Raises:
        UnsupportedTypeError: If a forward reference cannot be resolved
    """
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except (NameError, TypeError) as e:
        raise UnsupportedTypeError(f"Cannot resolve type hints of {display_name(obj)}: {e}") from e


def display_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return getattr(tp, "__qualname__", None) or repr(tp)


def type_key(tp: Any) -> str:
    """
    Build a stable textual key for a type hint.

    ``Optional[int]`` and ``int | None`` produce the same key; classes are keyed by
    their module and qualified name.
    """
    tp = strip_annotated(tp)
    if tp is NoneType or tp is None:
        return "None"
    if is_union(tp):
        return "Union[" + ",".join(sorted(type_key(arg) for arg in typing.get_args(tp))) + "]"
    origin = typing.get_origin(tp)
    if origin is not None:
        args = ",".join("..." if arg is Ellipsis else type_key(arg) for arg in typing.get_args(tp))
        return f"{type_key(origin)}[{args}]"
    if isinstance(tp, type):
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp)
