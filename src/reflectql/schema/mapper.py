"""Recursive conversion of Python types into graphql-core schema types.

Dataclasses become object types (or input object types when they appear inside
resolver arguments); their annotated fields, resolver methods and typed properties
become schema fields. Type graphs may be cyclic: a dataclass met again while its own
expansion is still running gets a placeholder object type whose fields are read
lazily from ``fields_cache`` once the expansion completes.
"""

import dataclasses
import functools
import hashlib
import inspect
from collections.abc import Callable, Collection, Mapping
from decimal import Decimal
from typing import Any

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLField,
    GraphQLFloat,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInputType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLOutputType,
    GraphQLResolveInfo,
    GraphQLScalarType,
    GraphQLString,
)

from reflectql import log
from reflectql.config import BuilderConfig
from reflectql.errors import (
    InvalidOutputShapeError,
    MissingOutputError,
    SchemaBuildError,
    TypeNameCollisionError,
    UnsupportedMapTypeError,
    UnsupportedTypeError,
)
from reflectql.schema.annotation import FieldAnnotation, exposed_fields, has_annotated_fields
from reflectql.schema.arguments import (
    ArgumentSlotInfo,
    CallableClassification,
    classify_callable,
    is_error_type,
)
from reflectql.schema.markers import Context, NamedSchemaType, resolved_field_of
from reflectql.schema.resolver import Resolver, attribute_resolver
from reflectql.schema.typing_utils import (
    async_stream_element,
    collection_element,
    dereference,
    display_name,
    is_mapping_type,
    is_struct,
    strip_annotated,
    type_hints,
    type_key,
    unwrap_optional,
)

RESOLVER_PREFIX = "resolve_"

GETTER_TYPES = (property, functools.cached_property)


def pass_event(event: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
    return event


def type_description(cls: type) -> str | None:
    """The class docstring, ignoring the signature docstring generated by ``@dataclass``."""
    doc = cls.__dict__.get("__doc__")
    if not doc or (dataclasses.is_dataclass(cls) and doc.startswith(f"{cls.__name__}(")):
        return None
    return inspect.cleandoc(doc)


def public_members(cls: type) -> list[tuple[str, Any]]:
    """Public attributes defined along the MRO, base classes first, in definition order."""
    members: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if not name.startswith("_"):
                members[name] = member
    return list(members.items())


class TypeMapper:
    """
    Converts Python types into schema types during one schema build.

    The mapper owns the registries of a build pass: completed object types by class,
    the set of classes whose expansion is running, the resolved field sets used by
    cycle placeholders, and the structural hashes used to share input object types.
    A mapper must not be used by concurrent builds.
    """

    def __init__(
        self,
        config: BuilderConfig,
        scalars: Mapping[Any, GraphQLScalarType],
        context_types: Collection[Any] = (Context,),
    ) -> None:
        self.config = config
        self.scalars = scalars
        self.context_types = tuple(context_types)

        self.type_registry: dict[type, GraphQLObjectType] = {}
        self.processing: set[type] = set()
        self.fields_cache: dict[type, dict[str, GraphQLField]] = {}

        self.type_hash_registry: dict[str, str] = {}
        self.struct_hash_cache: dict[type, str] = {}
        self.input_registry: dict[type, GraphQLInputObjectType] = {}
        self.input_types_by_name: dict[str, GraphQLInputObjectType] = {}

        self.type_names: dict[str, tuple[str, Any]] = {}
        self.name_overrides: dict[type, str] = {}
        self.root_instances: dict[type, Any] = {}
        self.subscription_roots: set[type] = set()

    # Scalars
    # ----------
    def scalar_for(self, tp: Any) -> GraphQLScalarType | None:
        if tp in self.scalars:
            return self.scalars[tp]
        if not isinstance(tp, type):
            return None
        if issubclass(tp, bool):
            return GraphQLBoolean
        if issubclass(tp, int):
            return GraphQLInt
        if issubclass(tp, (float, Decimal)):
            return GraphQLFloat
        if issubclass(tp, str):
            return GraphQLString
        return None

    # Output types
    # ----------
    def map_output(self, tp: Any) -> GraphQLOutputType:
        """
        Map a type hint to a schema output type.

        Raises:
            UnsupportedMapTypeError: If the hint is a mapping
            UnsupportedTypeError: If the hint has no schema representation
        """
        tp = strip_annotated(tp)
        scalar = self.scalar_for(tp)
        if scalar is not None:
            return scalar

        inner, is_optional = unwrap_optional(tp)
        if is_optional:
            return self.map_output(inner)

        if is_mapping_type(tp):
            raise UnsupportedMapTypeError(
                f"Mapping types are not supported in a schema, exclude the field with a '-' annotation: {display_name(tp)}"
            )

        element = collection_element(tp)
        if element is not None:
            return GraphQLList(self.map_output(element))

        if is_struct(tp) or tp in self.root_instances:
            return self.map_object(tp)

        raise UnsupportedTypeError(f"Unsupported type: {display_name(tp)}")

    def map_object(self, cls: type) -> GraphQLObjectType:
        """
        Expand a class into an object type, reusing the node of an already expanded class.

        A class reached again during its own expansion gets a placeholder node whose
        fields are read from ``fields_cache`` when the schema first needs them.
        """
        if cls in self.type_registry:
            return self.type_registry[cls]

        if cls in self.processing:
            log.debug(f"Cyclic reference to {display_name(cls)}, creating a placeholder type")
            placeholder = GraphQLObjectType(
                name=self.claim_name(self.type_name_of(cls), ("object", cls)),
                fields=lambda: self.fields_cache.get(cls, {}),
                description=type_description(cls),
            )
            self.type_registry[cls] = placeholder
            return placeholder

        self.processing.add(cls)
        try:
            fields = self.object_fields(cls)
        except SchemaBuildError:
            if cls not in self.fields_cache:
                self.type_registry.pop(cls, None)
            raise
        finally:
            self.processing.discard(cls)

        self.fields_cache[cls] = fields

        if cls in self.type_registry:
            return self.type_registry[cls]

        object_type = GraphQLObjectType(
            name=self.claim_name(self.type_name_of(cls), ("object", cls)),
            fields=fields,
            description=type_description(cls),
        )
        self.type_registry[cls] = object_type
        log.debug(f"Registered object type {object_type.name} with {len(fields)} field(s)")
        return object_type

    def object_fields(self, cls: type) -> dict[str, GraphQLField]:
        fields: dict[str, GraphQLField] = {}
        annotated: dict[str, FieldAnnotation] = {}

        if is_struct(cls):
            hints = type_hints(cls)
            try:
                exposed = exposed_fields(cls, self.config.tag_key)
            except SchemaBuildError as e:
                raise e.push(display_name(cls))

            for field, annotation in exposed:
                try:
                    field_type = self.map_output(hints.get(field.name, Any))
                except SchemaBuildError as e:
                    raise e.push(f"{display_name(cls)}.{field.name}")

                if annotation.non_null:
                    field_type = GraphQLNonNull(field_type)

                fields[annotation.exposed_name] = GraphQLField(
                    field_type,
                    resolve=attribute_resolver(field.name, annotation.exposed_name),
                    description=field.metadata.get("description"),
                )
                annotated[field.name] = annotation
                annotated[annotation.exposed_name] = annotation

        members = [
            (name, member) for name, member in public_members(cls) if name not in self.config.skip_methods
        ]

        # resolvers for annotated fields take precedence over every other method and getter
        remaining = []
        for name, member in members:
            target = self.resolver_target(name, member)
            if target is None:
                remaining.append((name, member))
                continue
            annotation = annotated.get(target)
            if annotation is None:
                if resolved_field_of(member) is None:
                    remaining.append((name, member))
                    continue
                raise SchemaBuildError(f"@resolves('{target}') names no annotated field").push(
                    f"{display_name(cls)}.{name}"
                )
            try:
                fields[annotation.exposed_name] = self.annotated_field_resolver(cls, member, annotation)
            except SchemaBuildError as e:
                raise e.push(f"{display_name(cls)}.{name}")
            log.debug(f"Bound {display_name(cls)}.{name} as resolver of field '{annotation.exposed_name}'")

        for name, member in remaining:
            if isinstance(member, GETTER_TYPES):
                self.add_getter_field(cls, name, member, fields)
            elif inspect.isfunction(member):
                self.add_method_field(cls, name, member, fields)

        return fields

    def resolver_target(self, name: str, member: Any) -> str | None:
        if not inspect.isfunction(member):
            return None
        target = resolved_field_of(member)
        if target is None and name.startswith(RESOLVER_PREFIX):
            target = name[len(RESOLVER_PREFIX) :]
        return target

    def annotated_field_resolver(self, cls: type, method: Callable[..., Any], annotation: FieldAnnotation) -> GraphQLField:
        classification = self.classify(cls, method)
        if classification.output is None:
            raise MissingOutputError(f"Resolver of field '{annotation.exposed_name}' should return a value")
        field = self.resolver_field(classification, self.root_instances.get(cls), cls in self.subscription_roots)
        if annotation.non_null:
            field.type = GraphQLNonNull(field.type)
        return field

    def add_method_field(
        self, cls: type, name: str, method: Callable[..., Any], fields: dict[str, GraphQLField]
    ) -> None:
        field_name = self.config.field_name(name)
        if field_name in fields:
            log.debug(f"Skipping method {display_name(cls)}.{name}: field '{field_name}' already exists")
            return

        try:
            classification = self.classify(cls, method)
        except SchemaBuildError as e:
            log.debug(f"Skipping method {display_name(cls)}.{name}: {e}")
            return
        if classification.output is None:
            log.debug(f"Skipping method {display_name(cls)}.{name}: no output value")
            return

        # a method that classifies as a resolver must map, or the build fails
        try:
            fields[field_name] = self.resolver_field(
                classification, self.root_instances.get(cls), cls in self.subscription_roots
            )
        except SchemaBuildError as e:
            raise e.push(f"{display_name(cls)}.{name}")

        log.debug(f"Bound method {display_name(cls)}.{name} as field '{field_name}'")

    def add_getter_field(self, cls: type, name: str, getter: Any, fields: dict[str, GraphQLField]) -> None:
        """Expose a typed property as a computed field, skipping anything that does not fit."""
        field_name = self.config.field_name(name)
        fget = getter.fget if isinstance(getter, property) else getter.func
        if fget is None or field_name in fields:
            return

        try:
            returned = type_hints(fget).get("return")
        except SchemaBuildError:
            return
        if returned is None or strip_annotated(returned) in (Any, object, type(None)):
            return

        dereferenced, _, _ = dereference(returned)
        if is_error_type(dereferenced):
            return
        if is_struct(dereferenced) and dereferenced not in self.scalars:
            if not has_annotated_fields(dereferenced, self.config.tag_key):
                return

        try:
            field_type = self.map_output(returned)
        except SchemaBuildError as e:
            log.debug(f"Skipping property {display_name(cls)}.{name}: {e}")
            return

        fields[field_name] = GraphQLField(field_type, resolve=attribute_resolver(name), description=inspect.getdoc(getter))
        log.debug(f"Bound property {display_name(cls)}.{name} as field '{field_name}'")

    def classify(self, cls: type, method: Callable[..., Any]) -> CallableClassification:
        return classify_callable(
            method,
            bound=True,
            receiver=cls,
            context_types=self.context_types,
            tag_key=self.config.tag_key,
        )

    def resolver_field(
        self,
        classification: CallableClassification,
        bound_receiver: Any = None,
        subscription: bool = False,
    ) -> GraphQLField:
        """Build the schema field of a classified callable: its type, arguments and resolver."""
        output = classification.output
        if output is None:
            raise MissingOutputError(f"Resolver {classification.name} should have an output return value")

        output_type = output.declared_type
        if subscription:
            output_type = async_stream_element(output_type)
            if output_type is None:
                raise InvalidOutputShapeError(
                    f"Subscription resolver {classification.name} should return an async iterator"
                )

        field_type = self.map_output(output_type)
        args = self.field_arguments(classification.input) if classification.input is not None else None
        resolver = Resolver(classification, bound_receiver, self.config.tag_key)
        description = inspect.getdoc(classification.func)

        if subscription:
            return GraphQLField(field_type, args=args, resolve=pass_event, subscribe=resolver, description=description)
        return GraphQLField(field_type, args=args, resolve=resolver, description=description)

    def map_function_root(
        self, name: str, functions: Mapping[str, Callable[..., Any]], subscription: bool = False
    ) -> GraphQLObjectType:
        """Build a root type from plain functions, one field per mapping entry."""
        fields: dict[str, GraphQLField] = {}
        for field_name, func in functions.items():
            try:
                classification = classify_callable(
                    func,
                    bound=False,
                    context_types=self.context_types,
                    tag_key=self.config.tag_key,
                )
                fields[field_name] = self.resolver_field(classification, subscription=subscription)
            except SchemaBuildError as e:
                raise e.push(f"{name}.{field_name}")
            log.debug(f"Bound function {display_name(func)} as field '{name}.{field_name}'")

        return GraphQLObjectType(name=self.claim_name(name, ("root", name)), fields=fields)

    # Input types
    # ----------
    def field_arguments(self, input_slot: ArgumentSlotInfo) -> dict[str, GraphQLArgument]:
        """Flatten the annotated fields of an input dataclass into field arguments."""
        cls = input_slot.dereferenced_type
        arguments: dict[str, GraphQLArgument] = {}
        for field, annotation, field_type in self.input_field_types(cls):
            arguments[annotation.exposed_name] = GraphQLArgument(
                field_type, description=field.metadata.get("description")
            )
        return arguments

    def input_field_types(self, cls: type) -> list[tuple[dataclasses.Field[Any], FieldAnnotation, GraphQLInputType]]:
        hints = type_hints(cls)
        try:
            exposed = exposed_fields(cls, self.config.tag_key)
        except SchemaBuildError as e:
            raise e.push(display_name(cls))

        result = []
        for field, annotation in exposed:
            try:
                field_type = self.map_input(hints.get(field.name, Any))
            except SchemaBuildError as e:
                raise e.push(f"{display_name(cls)}.{field.name}")
            if annotation.non_null:
                field_type = GraphQLNonNull(field_type)
            result.append((field, annotation, field_type))
        return result

    def map_input(self, tp: Any) -> GraphQLInputType:
        """
        Map a type hint to a schema input type.

        Raises:
            UnsupportedMapTypeError: If the hint is a mapping
            UnsupportedTypeError: If the hint has no schema representation
        """
        tp = strip_annotated(tp)
        scalar = self.scalar_for(tp)
        if scalar is not None:
            return scalar

        inner, is_optional = unwrap_optional(tp)
        if is_optional:
            return self.map_input(inner)

        if is_mapping_type(tp):
            raise UnsupportedMapTypeError(
                f"Mapping types are not supported in a schema, exclude the field with a '-' annotation: {display_name(tp)}"
            )

        element = collection_element(tp)
        if element is not None:
            return GraphQLList(self.map_input(element))

        if is_struct(tp):
            return self.map_input_object(tp)

        raise UnsupportedTypeError(f"Unsupported input type: {display_name(tp)}")

    def map_input_object(self, cls: type) -> GraphQLInputObjectType:
        """
        Expand a dataclass into an input object type.

        With shared types enabled, dataclasses with the same annotated field layout share
        one input object type, named after the first of them.
        """
        if cls in self.input_registry:
            return self.input_registry[cls]

        type_name = self.type_name_of(cls)
        digest = None
        if self.config.allow_shared_types:
            digest = self.struct_hash(cls)
            canonical_name = self.type_hash_registry.get(digest)
            if canonical_name is not None:
                log.debug(f"Input type {display_name(cls)} shares the layout of '{canonical_name}'")
                shared = self.input_types_by_name[canonical_name]
                self.input_registry[cls] = shared
                return shared

        owner = ("input", digest or cls)
        self.claim_name(type_name, owner)
        fields: dict[str, GraphQLInputField] = {}
        input_type = GraphQLInputObjectType(name=type_name, fields=lambda: fields, description=type_description(cls))

        self.input_registry[cls] = input_type
        self.input_types_by_name[type_name] = input_type
        if digest is not None:
            self.type_hash_registry[digest] = type_name

        try:
            for field, annotation, field_type in self.input_field_types(cls):
                fields[annotation.exposed_name] = GraphQLInputField(
                    field_type, description=field.metadata.get("description")
                )
        except SchemaBuildError:
            self.input_registry.pop(cls, None)
            self.input_types_by_name.pop(type_name, None)
            self.type_names.pop(type_name, None)
            if digest is not None:
                self.type_hash_registry.pop(digest, None)
            raise

        log.debug(f"Registered input type {type_name} with {len(fields)} field(s)")
        return input_type

    def struct_hash(self, cls: type) -> str:
        """Content hash over the ordered (exposed name, nullability, field type) layout of a dataclass."""
        if cls in self.struct_hash_cache:
            return self.struct_hash_cache[cls]

        hints = type_hints(cls)
        digest = hashlib.sha256()
        for field, annotation in exposed_fields(cls, self.config.tag_key):
            digest.update(f"{annotation}:{type_key(hints.get(field.name, Any))};".encode())

        self.struct_hash_cache[cls] = digest.hexdigest()
        return self.struct_hash_cache[cls]

    # Naming
    # ----------
    def type_name_of(self, cls: type) -> str:
        if isinstance(cls, NamedSchemaType) and isinstance(
            inspect.getattr_static(cls, "graphql_type_name", None), (classmethod, staticmethod)
        ):
            name = cls.graphql_type_name()
            if isinstance(name, str) and name:
                return name
        return self.name_overrides.get(cls, cls.__name__)

    def claim_name(self, name: str, owner: tuple[str, Any]) -> str:
        """
        Reserve a schema type name for one owner.

        Raises:
            TypeNameCollisionError: If another type already uses the name
        """
        existing = self.type_names.setdefault(name, owner)
        if existing != owner:
            raise TypeNameCollisionError(
                f"Type name '{name}' would be used by both {self.describe_owner(existing)} and {self.describe_owner(owner)}"
            )
        return name

    @staticmethod
    def describe_owner(owner: tuple[str, Any]) -> str:
        kind, identity = owner
        if isinstance(identity, type):
            return f"{kind} {identity.__module__}.{identity.__qualname__}"
        if kind == "input":
            return f"input layout {str(identity)[:12]}"
        return f"{kind} {identity}"
