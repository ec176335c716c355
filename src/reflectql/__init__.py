from reflectql.logger import get_logger

__version__ = "0.3.0"

log = get_logger("reflectql")

from reflectql.errors import (  # noqa: E402
    CoercionError,
    MalformedAnnotationError,
    ReflectQLError,
    ResolutionError,
    SchemaBuildError,
)
from reflectql.schema.annotation import FieldAnnotation, gql_field, parse_annotation  # noqa: E402
from reflectql.schema.builder import RootType, SchemaBuilder  # noqa: E402
from reflectql.schema.markers import Context, NamedSchemaType, resolves  # noqa: E402

__all__ = [
    "CoercionError",
    "Context",
    "FieldAnnotation",
    "MalformedAnnotationError",
    "NamedSchemaType",
    "ReflectQLError",
    "ResolutionError",
    "RootType",
    "SchemaBuildError",
    "SchemaBuilder",
    "__version__",
    "gql_field",
    "log",
    "parse_annotation",
    "resolves",
]
