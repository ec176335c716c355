"""Schema builder: turns root definitions into a graphql-core schema."""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from graphql import GraphQLObjectType, GraphQLScalarType, GraphQLSchema, validate_schema

from reflectql import log
from reflectql.config import BuilderConfig
from reflectql.errors import SchemaValidationError
from reflectql.schema.mapper import TypeMapper
from reflectql.schema.markers import Context
from reflectql.schema.scalars import DEFAULT_SCALARS


class RootType(str, Enum):
    QUERY = "Query"
    MUTATION = "Mutation"
    SUBSCRIPTION = "Subscription"

    @property
    def config_key(self) -> str:
        return self.name.lower()


class SchemaBuilder:
    """
    Builds a schema from root definitions.

    A root is either an object whose public methods become resolvers bound to it, a
    class (instantiated without arguments), or a mapping of field names to plain
    functions::

        schema = SchemaBuilder().with_query(Query()).with_mutation({"createWidget": create_widget}).build_schema()

    Each ``build_schema`` call runs one synthesis pass with fresh type registries. A
    builder must not run concurrent builds.
    """

    def __init__(self, config: BuilderConfig | None = None) -> None:
        self.config = config or BuilderConfig()
        self.roots: dict[RootType, Any] = {}
        self.custom_scalars: dict[Any, GraphQLScalarType] = dict(DEFAULT_SCALARS)
        self.context_types: list[Any] = [Context]

    def register_scalar(self, python_type: Any, scalar: GraphQLScalarType) -> "SchemaBuilder":
        """Map a Python type to a custom scalar, for both its bare and ``Optional`` forms."""
        self.custom_scalars[python_type] = scalar
        return self

    def register_context_type(self, context_type: Any) -> "SchemaBuilder":
        """Accept parameters annotated with ``context_type`` as the request context."""
        if context_type not in self.context_types:
            self.context_types.append(context_type)
        return self

    def allow_shared_types(self, allow: bool) -> "SchemaBuilder":
        self.config = self.config.model_copy(update={"allow_shared_types": allow})
        return self

    def with_query(self, query: Any) -> "SchemaBuilder":
        return self.with_root(RootType.QUERY, query)

    def with_mutation(self, mutation: Any) -> "SchemaBuilder":
        return self.with_root(RootType.MUTATION, mutation)

    def with_subscription(self, subscription: Any) -> "SchemaBuilder":
        return self.with_root(RootType.SUBSCRIPTION, subscription)

    def with_root(self, root_type: RootType, definition: Any) -> "SchemaBuilder":
        if definition is None:
            self.roots.pop(root_type, None)
        elif isinstance(definition, type):
            self.roots[root_type] = definition()
        else:
            self.roots[root_type] = definition
        return self

    def build_schema_config(self) -> dict[str, GraphQLObjectType | None]:
        """
        Build the root object types of the schema.

        Returns:
            dict: ``query``, ``mutation`` and ``subscription`` object types, suitable as
            keyword arguments of ``GraphQLSchema``

        Raises:
            SchemaBuildError: If a type or resolver cannot be represented; no partial
                configuration is returned
        """
        mapper = TypeMapper(self.config, self.custom_scalars, self.context_types)
        for root_type, definition in self.roots.items():
            if not isinstance(definition, Mapping):
                root_class = type(definition)
                mapper.root_instances[root_class] = definition
                mapper.name_overrides[root_class] = root_type.value
                if root_type is RootType.SUBSCRIPTION:
                    mapper.subscription_roots.add(root_class)

        schema_config: dict[str, GraphQLObjectType | None] = {root_type.config_key: None for root_type in RootType}
        for root_type, definition in self.roots.items():
            log.debug(f"Building {root_type.value} type")
            schema_config[root_type.config_key] = self.build_root(mapper, root_type, definition)

        log.info(
            f"Built {len(mapper.type_registry)} object type(s) and {len(mapper.input_types_by_name)} input type(s)"
        )
        return schema_config

    def build_root(self, mapper: TypeMapper, root_type: RootType, definition: Any) -> GraphQLObjectType:
        subscription = root_type is RootType.SUBSCRIPTION
        if isinstance(definition, Mapping):
            functions: Mapping[str, Callable[..., Any]] = definition
            return mapper.map_function_root(root_type.value, functions, subscription=subscription)

        return mapper.map_object(type(definition))

    def build_schema(self) -> GraphQLSchema:
        """
        Build and validate the schema.

        Raises:
            SchemaBuildError: If synthesis fails
            SchemaValidationError: If graphql-core rejects the assembled schema
        """
        schema = GraphQLSchema(**self.build_schema_config())

        errors = validate_schema(schema)
        if errors:
            for error in errors:
                log.error(error.message)
            raise SchemaValidationError([error.message for error in errors])

        log.info("Successfully built the GraphQL schema.")
        return schema
