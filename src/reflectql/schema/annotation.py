"""Per-field schema annotations.

A dataclass field is exposed in the schema by attaching an annotation string to its
metadata under the ``gql`` key::

    @dataclass
    class Widget:
        id: str = gql_field("id,nonNull")
        name: str = gql_field("name")
        cache: dict[str, str] = gql_field("-", default_factory=dict)

The string is ``<exposedName>[,nonNull]``. An empty string or a missing annotation leaves
the field out of the schema, and so does the exclusion marker ``-``.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any

from reflectql.errors import MalformedAnnotationError

DEFAULT_TAG_KEY = "gql"
NON_NULL_FLAG = "nonNull"
EXCLUDED_NAME = "-"


@dataclass(frozen=True)
class FieldAnnotation:
    exposed_name: str = ""
    non_null: bool = False

    @property
    def is_exposed(self) -> bool:
        return self.exposed_name not in ("", EXCLUDED_NAME)

    def __str__(self) -> str:
        if self.non_null:
            return f"{self.exposed_name},{NON_NULL_FLAG}"
        return self.exposed_name


def parse_annotation(text: str) -> FieldAnnotation:
    """
    Parse a field annotation string.

    Args:
        text: Annotation of the form ``name`` or ``name,nonNull``

    Returns:
        FieldAnnotation: The exposed name and nullability

    Raises:
        MalformedAnnotationError: If more than one separator is present or the flag is not ``nonNull``
    """
    parts = text.split(",")
    if len(parts) > 2:
        raise MalformedAnnotationError(f"Invalid annotation, expected 'fieldName[,{NON_NULL_FLAG}]', got: '{text}'")

    if len(parts) == 2:
        if parts[1] != NON_NULL_FLAG:
            raise MalformedAnnotationError(f"Invalid annotation flag, expected '{NON_NULL_FLAG}', got: '{parts[1]}'")
        return FieldAnnotation(exposed_name=parts[0], non_null=True)

    return FieldAnnotation(exposed_name=parts[0])


def annotation_of(field: dataclasses.Field[Any], tag_key: str = DEFAULT_TAG_KEY) -> FieldAnnotation:
    """Read and parse the annotation attached to a dataclass field."""
    text = field.metadata.get(tag_key, "")
    if not isinstance(text, str):
        raise MalformedAnnotationError(f"Annotation of field '{field.name}' must be a string, got {type(text).__name__}")
    try:
        return parse_annotation(text)
    except MalformedAnnotationError as e:
        raise e.push(field.name)


def exposed_fields(
    cls: type, tag_key: str = DEFAULT_TAG_KEY
) -> list[tuple[dataclasses.Field[Any], FieldAnnotation]]:
    """
    List the fields of a dataclass that are exposed in the schema, in declaration order.

    Fields whose name starts with an underscore are never exposed. Fields without an
    annotation, with an empty one, or excluded with ``-`` are skipped.

    Raises:
        MalformedAnnotationError: If an annotation string cannot be parsed
    """
    exposed = []
    for field in dataclasses.fields(cls):
        if field.name.startswith("_"):
            continue
        annotation = annotation_of(field, tag_key)
        if annotation.is_exposed:
            exposed.append((field, annotation))
    return exposed


def has_annotated_fields(cls: type, tag_key: str = DEFAULT_TAG_KEY) -> bool:
    """Check whether a dataclass exposes at least one field. Malformed annotations do not count."""
    if not dataclasses.is_dataclass(cls):
        return False
    for field in dataclasses.fields(cls):
        if field.name.startswith("_"):
            continue
        try:
            annotation = annotation_of(field, tag_key)
        except MalformedAnnotationError:
            continue
        if annotation.is_exposed:
            return True
    return False


def gql_field(annotation: str, *, description: str | None = None, **kwargs: Any) -> Any:
    """
    Declare a dataclass field carrying a schema annotation.

    Args:
        annotation: The annotation string, e.g. ``"id,nonNull"``
        description: Optional description of the schema field
        **kwargs: Forwarded to ``dataclasses.field`` (``default``, ``default_factory``, ...)

    Returns:
        The ``dataclasses.field`` declaration
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[DEFAULT_TAG_KEY] = annotation
    if description is not None:
        metadata["description"] = description
    return dataclasses.field(metadata=metadata, **kwargs)
