from collections import Counter

from graphql import (
    GraphQLSchema,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_object_type,
    is_scalar_type,
    is_union_type,
)


def is_introspection_type(type_name: str) -> bool:
    return type_name.startswith("__")


def is_root_type(type_name: str) -> bool:
    return type_name in {
        "Query",
        "Mutation",
        "Subscription",
    }


def is_builtin_scalar_type(type_name: str) -> bool:
    return type_name in {
        "ID",
        "String",
        "Int",
        "Float",
        "Boolean",
    }


def count_types(schema: GraphQLSchema) -> dict[str, int]:
    """
    Count the named types of a built schema by kind, leaving out introspection types.

    Args:
        schema: The built schema

    Returns:
        dict: Number of root, object, input object, scalar and custom scalar types
    """
    counts: Counter[str] = Counter()
    for type_name, named_type in schema.type_map.items():
        if is_introspection_type(type_name):
            continue
        if is_object_type(named_type):
            counts["root" if is_root_type(type_name) else "object"] += 1
        elif is_input_object_type(named_type):
            counts["input_object"] += 1
        elif is_scalar_type(named_type):
            counts["scalar" if is_builtin_scalar_type(type_name) else "custom_scalar"] += 1
        elif is_enum_type(named_type) or is_interface_type(named_type) or is_union_type(named_type):
            counts["other"] += 1
    return {kind: counts[kind] for kind in ("root", "object", "input_object", "scalar", "custom_scalar", "other")}
