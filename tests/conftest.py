from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

import pytest
from graphql import GraphQLResolveInfo

from reflectql import Context, gql_field, resolves
from reflectql.config import BuilderConfig
from reflectql.schema.mapper import TypeMapper
from reflectql.schema.scalars import DEFAULT_SCALARS


@dataclass
class Widget:
    """A widget in the catalogue."""

    id: str = gql_field("id,nonNull")
    name: str = gql_field("name")
    tags: list[str] = gql_field("tags", default_factory=list)
    cache: dict[str, str] = gql_field("-", default_factory=dict)
    internal: int = 0


@dataclass
class WidgetArgs:
    id: str = gql_field("id,nonNull")


@dataclass
class CreateWidgetArgs:
    name: str = gql_field("name,nonNull")
    tags: list[str] | None = gql_field("tags", default=None)


@dataclass
class PageArgs:
    limit: int = gql_field("limit", default=10)
    offset: int = gql_field("offset", default=0)


@dataclass
class TreeNode:
    name: str = gql_field("name")
    children: list["TreeNode"] = gql_field("children", default_factory=list)
    parent: "TreeNode | None" = gql_field("parent", default=None)


@dataclass
class Author:
    name: str = gql_field("name")
    books: list["Book"] = gql_field("books", default_factory=list)


@dataclass
class Book:
    title: str = gql_field("title,nonNull")
    author: Author | None = gql_field("author", default=None)


@dataclass
class Event:
    happened_at: datetime = gql_field("happenedAt,nonNull")
    label: str = gql_field("label")


@dataclass
class Product:
    sku: str = gql_field("sku,nonNull")
    title: str = gql_field("title")
    price_cents: int = gql_field("priceCents")

    def resolve_title(self) -> str:
        return self.title.upper()

    @resolves("priceCents")
    def price_with_tax(self) -> int:
        return self.price_cents + self.price_cents // 5

    @property
    def display_name(self) -> str:
        return f"{self.sku}: {self.title}"

    def before_save(self) -> str:
        return "hook"

    def table_name(self) -> str:
        return "products"

    def lookup(self, key: int) -> str:
        return str(key)

    def _private(self) -> str:
        return "hidden"


@dataclass
class Tick:
    count: int = gql_field("count,nonNull")


@dataclass
class TickArgs:
    limit: int = gql_field("limit,nonNull")


class WidgetQuery:
    """Root query over an in-memory widget store."""

    def __init__(self) -> None:
        self.widgets = {
            "42": Widget(id="42", name="x", tags=["blue"]),
            "7": Widget(id="7", name="y"),
        }

    def get_widget(self, args: WidgetArgs) -> tuple[Widget | None, Exception | None]:
        widget = self.widgets.get(args.id)
        if widget is None:
            return None, LookupError(f"widget {args.id} not found")
        return widget, None

    def all_widgets(self, info: GraphQLResolveInfo, args: PageArgs) -> list[Widget]:
        return list(self.widgets.values())[args.offset : args.offset + args.limit]

    def whoami(self, ctx: Context) -> str:
        return str(ctx.get("user", "anonymous"))

    def tree(self) -> TreeNode:
        leaf = TreeNode(name="leaf")
        root = TreeNode(name="root", children=[leaf])
        leaf.parent = root
        return root

    def reset(self) -> None:
        self.widgets.clear()


class TickSubscription:
    async def ticks(self, args: TickArgs) -> AsyncIterator[Tick]:
        for count in range(args.limit):
            yield Tick(count=count)


def create_widget(args: CreateWidgetArgs) -> Widget:
    return Widget(id=f"new-{args.name}", name=args.name, tags=args.tags or [])


@pytest.fixture
def config() -> BuilderConfig:
    return BuilderConfig()


@pytest.fixture
def mapper(config: BuilderConfig) -> TypeMapper:
    return TypeMapper(config, DEFAULT_SCALARS)

