from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Frontmatter(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    template: Optional[str] = None
    title: Optional[str] = None
    slug: Optional[str] = None


class MarkdownFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    content_type: str = Field(alias="contentType")


class MarkdownPageRecord(BaseModel):
    """One Markdown node as returned by the markdown query."""

    id: str
    frontmatter: Frontmatter = Field(default_factory=Frontmatter)
    fields: MarkdownFields


class ProductRecord(BaseModel):
    handle: str


class SheetRow(BaseModel):
    """A row of the links spreadsheet; ``articleid`` keys the page path."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    articleid: str
    author: Optional[str] = None
    comment: Optional[str] = None
    dateadded: Optional[str] = None
    excerpt: Optional[str] = None
    highlight: Optional[str] = None
    highlight2: Optional[str] = None
    id: Optional[str] = None
    image: Optional[str] = None
    images: Optional[str] = None
    popularity: Optional[str] = None
    publishdate: Optional[str] = None
    relativepopularity: Optional[str] = None
    source: Optional[str] = None
    source2: Optional[str] = None
    tags: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None


class PageRequest(BaseModel):
    path: str
    component: str
    context: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("path", "component")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value


class QueryResult(BaseModel):
    data: Optional[Dict[str, Any]] = None
    errors: List[Any] = Field(default_factory=list)
