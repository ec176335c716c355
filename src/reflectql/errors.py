"""Error taxonomy for schema synthesis and resolution."""


class ReflectQLError(Exception):
    """Base class for every error raised by reflectql."""


class SchemaBuildError(ReflectQLError):
    """Raised synchronously while building a schema; aborts the whole build.

    The error keeps the chain of enclosing type, field and method names in ``path`` so
    that a failure deep inside a type graph reads like ``Query.get_widget > Widget.owner: ...``.
    Callers re-raising on the way out add their own segment with ``push``.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.path: list[str] = []

    def push(self, segment: str) -> "SchemaBuildError":
        self.path.insert(0, segment)
        return self

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{' > '.join(self.path)}: {self.message}"


class MalformedAnnotationError(SchemaBuildError, ValueError):
    """A field annotation string violates the ``name[,nonNull]`` grammar."""


class ClassificationError(SchemaBuildError):
    """A callable's signature cannot be mapped onto resolver slots."""


class InvalidReceiverError(ClassificationError):
    pass


class TooManyArgumentsError(ClassificationError):
    pass


class TooManyReturnsError(ClassificationError):
    pass


class AmbiguousInputError(ClassificationError):
    pass


class AmbiguousOutputError(ClassificationError):
    pass


class InvalidInputShapeError(ClassificationError):
    pass


class InvalidOutputShapeError(ClassificationError):
    pass


class MissingOutputError(ClassificationError):
    pass


class UnsupportedTypeError(SchemaBuildError, TypeError):
    """A native type has no schema representation."""


class UnsupportedMapTypeError(UnsupportedTypeError):
    """Mapping types cannot be exposed; exclude the field with a ``-`` annotation."""


class TypeNameCollisionError(SchemaBuildError):
    """Two different types would be emitted under the same schema type name."""


class SchemaValidationError(SchemaBuildError):
    """The assembled schema was rejected by graphql-core validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"Found {len(errors)} schema validation error(s): {'; '.join(errors)}")
        self.errors = errors


class ResolutionError(ReflectQLError):
    """Raised at field resolution time, reported per field by the execution engine.

    Wraps either an error value returned by the resolved callable or a failure while
    coercing request arguments into the callable's declared parameter types.
    """

    def __init__(self, message: str, original_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class CoercionError(ResolutionError, ValueError):
    """A raw request value could not be converted into the declared parameter type."""
