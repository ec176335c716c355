from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import pytest
from graphql import (
    GraphQLBoolean,
    GraphQLFloat,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLString,
)

from reflectql import gql_field, resolves
from reflectql.config import BuilderConfig
from reflectql.errors import (
    InvalidInputShapeError,
    SchemaBuildError,
    TypeNameCollisionError,
    UnsupportedMapTypeError,
    UnsupportedTypeError,
)
from reflectql.schema.mapper import TypeMapper
from reflectql.schema.resolver import Resolver
from reflectql.schema.scalars import DEFAULT_SCALARS, GraphQLDate, GraphQLDateTime
from tests.conftest import Author, Book, Event, Product, TreeNode, Widget


class TestScalars:
    @pytest.mark.parametrize(
        "python_type,expected",
        [
            (bool, GraphQLBoolean),
            (int, GraphQLInt),
            (float, GraphQLFloat),
            (Decimal, GraphQLFloat),
            (str, GraphQLString),
            (datetime, GraphQLDateTime),
            (date, GraphQLDate),
        ],
    )
    def test_scalar_mapping(self, mapper: TypeMapper, python_type: type, expected: Any) -> None:
        assert mapper.map_output(python_type) is expected

    def test_optional_is_unwrapped(self, mapper: TypeMapper) -> None:
        assert mapper.map_output(Optional[int]) is GraphQLInt
        assert mapper.map_output(str | None) is GraphQLString

    def test_lists(self, mapper: TypeMapper) -> None:
        mapped = mapper.map_output(list[str])
        assert isinstance(mapped, GraphQLList)
        assert mapped.of_type is GraphQLString

        nested = mapper.map_output(list[list[int]])
        assert isinstance(nested, GraphQLList) and isinstance(nested.of_type, GraphQLList)
        assert nested.of_type.of_type is GraphQLInt

        assert mapper.map_output(tuple[float, ...]).of_type is GraphQLFloat  # type: ignore[attr-defined]
        assert mapper.map_output(set[bool]).of_type is GraphQLBoolean  # type: ignore[attr-defined]

    @pytest.mark.parametrize("python_type", [dict[str, int], dict])
    def test_mappings_are_unsupported(self, mapper: TypeMapper, python_type: Any) -> None:
        with pytest.raises(UnsupportedMapTypeError):
            mapper.map_output(python_type)

    @pytest.mark.parametrize("python_type", [bytes, complex, int | str, tuple[int, str], Any])
    def test_unsupported_types(self, mapper: TypeMapper, python_type: Any) -> None:
        with pytest.raises(UnsupportedTypeError):
            mapper.map_output(python_type)

    def test_registered_scalar_overrides_builtin(self, config: BuilderConfig) -> None:
        scalars = {**DEFAULT_SCALARS, str: GraphQLDateTime}
        assert TypeMapper(config, scalars).map_output(str | None) is GraphQLDateTime


class TestObjects:
    def test_annotated_fields(self, mapper: TypeMapper) -> None:
        widget = mapper.map_object(Widget)
        assert widget.name == "Widget"
        assert widget.description == "A widget in the catalogue."
        assert list(widget.fields) == ["id", "name", "tags"]
        assert isinstance(widget.fields["id"].type, GraphQLNonNull)
        assert widget.fields["id"].type.of_type is GraphQLString
        assert widget.fields["name"].type is GraphQLString
        assert isinstance(widget.fields["tags"].type, GraphQLList)

    def test_same_class_maps_to_same_node(self, mapper: TypeMapper) -> None:
        assert mapper.map_object(Widget) is mapper.map_output(Widget | None)
        assert len(mapper.type_registry) == 1

    def test_custom_scalar_field(self, mapper: TypeMapper) -> None:
        event = mapper.map_object(Event)
        assert event.fields["happenedAt"].type.of_type is GraphQLDateTime  # type: ignore[attr-defined]

    def test_mapping_field_is_rejected_with_path(self, mapper: TypeMapper) -> None:
        @dataclass
        class Settings:
            values: dict[str, str] = gql_field("values")

        with pytest.raises(UnsupportedMapTypeError) as exc_info:
            mapper.map_object(Settings)
        assert len(exc_info.value.path) == 1
        assert exc_info.value.path[0].endswith("Settings.values")
        assert Settings not in mapper.type_registry
        assert Settings not in mapper.processing

    def test_malformed_annotation_aborts(self, mapper: TypeMapper) -> None:
        @dataclass
        class Broken:
            value: int = gql_field("value,maybe")

        with pytest.raises(SchemaBuildError):
            mapper.map_object(Broken)


class TestCycles:
    def test_self_reference_resolves_to_the_same_node(self, mapper: TypeMapper) -> None:
        node = mapper.map_object(TreeNode)
        children = node.fields["children"].type
        assert isinstance(children, GraphQLList)
        assert children.of_type is node
        assert node.fields["parent"].type is node
        assert mapper.processing == set()

    def test_mutual_recursion(self, mapper: TypeMapper) -> None:
        author = mapper.map_object(Author)
        book = mapper.map_object(Book)
        assert author.fields["books"].type.of_type is book  # type: ignore[attr-defined]
        assert book.fields["author"].type is author
        assert set(mapper.fields_cache) == {Author, Book}

    def test_placeholder_fields_are_complete(self, mapper: TypeMapper) -> None:
        book = mapper.map_output(Book)
        assert isinstance(book, GraphQLObjectType)
        author = book.fields["author"].type
        assert isinstance(author, GraphQLObjectType)
        assert list(author.fields) == ["name", "books"]


class TestMethods:
    def test_resolver_convention_replaces_field(self, mapper: TypeMapper) -> None:
        product = mapper.map_object(Product)
        assert isinstance(product.fields["title"].resolve, Resolver)
        assert "resolveTitle" not in product.fields

    def test_resolves_decorator_matches_exposed_name(self, mapper: TypeMapper) -> None:
        product = mapper.map_object(Product)
        price = product.fields["priceCents"]
        assert isinstance(price.resolve, Resolver)
        assert price.resolve.classification.name == "price_with_tax"
        assert "priceWithTax" not in product.fields

    def test_property_becomes_computed_field(self, mapper: TypeMapper) -> None:
        product = mapper.map_object(Product)
        assert product.fields["displayName"].type is GraphQLString

    def test_lifecycle_hooks_and_unusable_methods_are_skipped(self, mapper: TypeMapper) -> None:
        product = mapper.map_object(Product)
        assert set(product.fields) == {"sku", "title", "priceCents", "displayName"}

    def test_skip_methods_can_be_configured(self) -> None:
        config = BuilderConfig(skip_methods=frozenset({"display_name"}))
        product = TypeMapper(config, DEFAULT_SCALARS).map_object(Product)
        assert "displayName" not in product.fields
        assert "beforeSave" in product.fields
        assert "tableName" in product.fields

    def test_camel_case_can_be_disabled(self) -> None:
        config = BuilderConfig(auto_camel_case=False)
        product = TypeMapper(config, DEFAULT_SCALARS).map_object(Product)
        assert "display_name" in product.fields

    def test_resolves_unknown_field_is_an_error(self, mapper: TypeMapper) -> None:
        @dataclass
        class Mislabelled:
            value: int = gql_field("value")

            @resolves("missing")
            def compute(self) -> int:
                return 1

        with pytest.raises(SchemaBuildError, match="names no annotated field"):
            mapper.map_object(Mislabelled)

    def test_explicit_resolver_errors_are_reported(self, mapper: TypeMapper) -> None:
        @dataclass
        class BadResolver:
            value: int = gql_field("value")

            def resolve_value(self, key: int) -> int:
                return key

        with pytest.raises(InvalidInputShapeError):
            mapper.map_object(BadResolver)

    def test_method_with_input_becomes_field_with_arguments(self, mapper: TypeMapper) -> None:
        @dataclass
        class Filter:
            prefix: str = gql_field("prefix,nonNull")
            limit: int = gql_field("limit")

        @dataclass
        class Catalogue:
            name: str = gql_field("name")

            def matching_widgets(self, args: Filter) -> list[Widget]:
                return []

        catalogue = mapper.map_object(Catalogue)
        field = catalogue.fields["matchingWidgets"]
        assert set(field.args) == {"prefix", "limit"}
        assert isinstance(field.args["prefix"].type, GraphQLNonNull)
        assert field.args["limit"].type is GraphQLInt


class TestInputs:
    def test_nested_input_objects(self, mapper: TypeMapper) -> None:
        @dataclass
        class Point:
            x: float = gql_field("x,nonNull")
            y: float = gql_field("y,nonNull")

        @dataclass
        class Segment:
            start: Point = gql_field("start,nonNull")
            end: Point = gql_field("end,nonNull")

        segment = mapper.map_input(Segment)
        assert isinstance(segment, GraphQLInputObjectType)
        point = segment.fields["start"].type.of_type  # type: ignore[attr-defined]
        assert isinstance(point, GraphQLInputObjectType)
        assert point.name == "Point"
        assert segment.fields["end"].type.of_type is point  # type: ignore[attr-defined]

    def test_identical_layouts_share_one_type(self, mapper: TypeMapper) -> None:
        @dataclass
        class Coordinates:
            lat: float = gql_field("lat,nonNull")
            lon: float = gql_field("lon,nonNull")

        @dataclass
        class Location:
            lat: float = gql_field("lat,nonNull")
            lon: float = gql_field("lon,nonNull")

        first = mapper.map_input(Coordinates)
        second = mapper.map_input(Location)
        assert first is second
        assert first.name == "Coordinates"  # type: ignore[attr-defined]
        assert list(mapper.input_types_by_name) == ["Coordinates"]
        assert mapper.type_hash_registry[mapper.struct_hash(Location)] == "Coordinates"

    def test_nullability_is_part_of_the_layout(self, mapper: TypeMapper) -> None:
        @dataclass
        class Strict:
            value: int = gql_field("value,nonNull")

        @dataclass
        class Loose:
            value: int = gql_field("value")

        assert mapper.struct_hash(Strict) != mapper.struct_hash(Loose)
        assert mapper.map_input(Strict) is not mapper.map_input(Loose)

    def test_sharing_can_be_disabled(self) -> None:
        @dataclass
        class First:
            value: int = gql_field("value")

        @dataclass
        class Second:
            value: int = gql_field("value")

        mapper = TypeMapper(BuilderConfig(allow_shared_types=False), DEFAULT_SCALARS)
        assert mapper.map_input(First) is not mapper.map_input(Second)

    def test_same_name_different_layout_collides(self, mapper: TypeMapper) -> None:
        def make_first() -> type:
            @dataclass
            class Range:
                low: int = gql_field("low")

            return Range

        def make_second() -> type:
            @dataclass
            class Range:
                low: int = gql_field("low")
                high: int = gql_field("high")

            return Range

        mapper.map_input(make_first())
        with pytest.raises(TypeNameCollisionError):
            mapper.map_input(make_second())

    def test_same_name_same_layout_is_shared(self, mapper: TypeMapper) -> None:
        def make() -> type:
            @dataclass
            class Tag:
                label: str = gql_field("label")

            return Tag

        assert mapper.map_input(make()) is mapper.map_input(make())

    def test_output_name_clash_collides(self, mapper: TypeMapper) -> None:
        def make(annotation: str) -> type:
            @dataclass
            class Node:
                value: int = gql_field(annotation)

            return Node

        mapper.map_object(make("value"))
        with pytest.raises(TypeNameCollisionError):
            mapper.map_object(make("value"))

    def test_input_and_output_types_do_not_share_names(self, mapper: TypeMapper) -> None:
        mapper.map_object(Widget)
        with pytest.raises(TypeNameCollisionError):
            mapper.map_input(Widget)

    def test_cyclic_input_type(self, mapper: TypeMapper) -> None:
        category = mapper.map_input(TreeNode)
        assert isinstance(category, GraphQLInputObjectType)
        assert category.fields["children"].type.of_type is category  # type: ignore[attr-defined]


class TestNaming:
    def test_graphql_type_name_classmethod(self, mapper: TypeMapper) -> None:
        @dataclass
        class Renamed:
            value: int = gql_field("value")

            @classmethod
            def graphql_type_name(cls) -> str:
                return "CustomName"

        assert mapper.map_object(Renamed).name == "CustomName"

    def test_graphql_type_name_staticmethod(self, mapper: TypeMapper) -> None:
        @dataclass
        class Renamed:
            value: int = gql_field("value")

            @staticmethod
            def graphql_type_name() -> str:
                return "StaticName"

        assert mapper.map_input(Renamed).name == "StaticName"  # type: ignore[attr-defined]

    def test_instance_method_name_is_ignored(self, mapper: TypeMapper) -> None:
        @dataclass
        class Plain:
            value: int = gql_field("value")

            def graphql_type_name(self) -> str:
                return "Ignored"

        assert mapper.map_object(Plain).name == "Plain"
