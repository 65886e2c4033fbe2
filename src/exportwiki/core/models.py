"""Data models for ExportWiki."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Icon(BaseModel):
    """Page icon taken from the metadata export.

    ``kind`` is decided once, when the icon is extracted: an emoji is shown
    as text, an image path is served through the image endpoint.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["emoji", "image"]
    value: str


class NavNode(BaseModel):
    """One entry in the navigation hierarchy."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    slug: str
    file_path: str | None = None
    is_external: bool = False
    external_url: str | None = None
    is_csv: bool = False
    is_inline_db: bool = False
    icon: Icon | None = None
    children: list["NavNode"] = Field(default_factory=list)


class WorkspaceData(BaseModel):
    """Root of a parsed workspace export."""

    id: str = ""
    name: str = "Workspace"
    tree: list[NavNode] = Field(default_factory=list)


class PageContent(BaseModel):
    """A resolved markdown page."""

    title: str
    content: str
    images: list[str] = Field(default_factory=list)
    icon: Icon | None = None
    file_path: str | None = None


class TabularData(BaseModel):
    """Header and rows of one CSV export."""

    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, str]] = Field(default_factory=list)


class TabularPair(BaseModel):
    """The filtered view and the complete ``_all`` export of one table."""

    filtered: TabularData
    all: TabularData


class ValueColor(str, Enum):
    """Color categories used for select values in the metadata export."""

    DEFAULT = "default"
    GRAY = "gray"
    BROWN = "brown"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"
    RED = "red"


class TableView(BaseModel):
    """A table as served: both variants plus value colors."""

    filtered: TabularData
    all: TabularData
    colors: dict[str, ValueColor] = Field(default_factory=dict)
    default_variant: Literal["all", "filtered"] = "all"
    file_path: str


class SearchDocument(BaseModel):
    """Plain-text document fed to the search index."""

    id: str
    title: str
    slug: str
    content: str
    type: Literal["page", "table"]


class SearchResult(BaseModel):
    """A ranked search hit."""

    id: str
    title: str
    slug: str
    excerpt: str
    type: Literal["page", "table"]
    score: float
