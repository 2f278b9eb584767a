"""
Page creation pipeline.

Three stages run in a fixed order, each turning one query result into page
creation requests:

- markdown pages, grouped by content type, for nodes with a ``template``
- product pages, one per commerce product handle
- blog pages, one per spreadsheet row

Only the markdown query's errors are checked; a failure there aborts the
whole pipeline before products and spreadsheet rows are queried.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from mkdocs.exceptions import PluginError

from plugins.create_pages.models import (
    MarkdownPageRecord,
    PageRequest,
    ProductRecord,
    QueryResult,
    SheetRow,
)

log = logging.getLogger("mkdocs.plugins.create_pages")

MARKDOWN_LIMIT = 1000

MARKDOWN_QUERY: Dict[str, Any] = {"source": "markdown", "limit": MARKDOWN_LIMIT}
PRODUCTS_QUERY: Dict[str, Any] = {"source": "products"}
SHEET_QUERY: Dict[str, Any] = {
    "source": "sheet_rows",
    "sort": {"field": "dateadded", "order": "DESC"},
}

# Rendered from the spreadsheet instead of from markdown
RESERVED_CONTENT_TYPE = "posts"
# Blog index is a regular docs page
RESERVED_SLUG = "/blog/"

PRODUCT_TEMPLATE = "ProductPage"
BLOG_TEMPLATE = "SingleBlog"

PathLike = Union[str, Path]


class QueryError(PluginError):
    """The markdown query reported errors; no pages past it were created."""

    def __init__(self, errors: List[Any]):
        self.errors = list(errors)
        super().__init__(
            f"[create_pages] markdown query failed with {len(self.errors)} error(s)"
        )


def resolve_component(templates_dir: PathLike, name: str, extension: str) -> str:
    return str((Path(templates_dir) / f"{name}{extension}").resolve())


def group_by_content_type(
    records: List[MarkdownPageRecord],
) -> Dict[str, List[MarkdownPageRecord]]:
    groups: Dict[str, List[MarkdownPageRecord]] = {}
    for record in records:
        groups.setdefault(record.fields.content_type, []).append(record)
    return groups


def markdown_pages(
    data: Dict[str, Any], templates_dir: PathLike, template_extension: str = ".html"
) -> List[PageRequest]:
    records = [MarkdownPageRecord.model_validate(n) for n in data["markdown"]]
    requests: List[PageRequest] = []

    for content_type, pages in group_by_content_type(records).items():
        if content_type == RESERVED_CONTENT_TYPE:
            continue

        pages_to_create = [
            page
            for page in pages
            if page.fields.slug != RESERVED_SLUG and page.frontmatter.template
        ]
        if not pages_to_create:
            log.info(f"[create_pages] Skipping {content_type}")
            continue

        log.info(f"[create_pages] Creating {len(pages_to_create)} {content_type}")
        for page in pages_to_create:
            requests.append(
                PageRequest(
                    path=page.fields.slug,
                    component=resolve_component(
                        templates_dir, page.frontmatter.template, template_extension
                    ),
                    context={"id": page.id},
                )
            )
    return requests


def product_pages(
    data: Dict[str, Any], templates_dir: PathLike, template_extension: str = ".html"
) -> List[PageRequest]:
    component = resolve_component(templates_dir, PRODUCT_TEMPLATE, template_extension)
    requests = []
    for raw in data["products"]:
        product = ProductRecord.model_validate(raw)
        requests.append(
            PageRequest(
                path=f"/product/{product.handle}/",
                component=component,
                context={"handle": product.handle},
            )
        )
    return requests


def sheet_pages(
    data: Dict[str, Any], templates_dir: PathLike, template_extension: str = ".html"
) -> List[PageRequest]:
    component = resolve_component(templates_dir, BLOG_TEMPLATE, template_extension)
    requests = []
    for raw in data["rows"]:
        row = SheetRow.model_validate(raw)
        requests.append(
            PageRequest(
                path=f"/blog/{row.articleid}/",
                component=component,
                context={"blogid": row.articleid},
            )
        )
    return requests


def create_pages(
    graphql: Callable[[Dict[str, Any]], QueryResult],
    create_page: Callable[[PageRequest], None],
    templates_dir: PathLike,
    template_extension: str = ".html",
) -> None:
    """
    Run the markdown, product and spreadsheet stages in order, passing each
    request to ``create_page``.

    Raises:
        QueryError: the markdown query returned errors. Product and
            spreadsheet queries are not issued in that case.
    """
    result = graphql(MARKDOWN_QUERY)
    if result.errors:
        for error in result.errors:
            log.error(f"[create_pages] {error}")
        raise QueryError(result.errors)

    for request in markdown_pages(result.data, templates_dir, template_extension):
        create_page(request)

    # Product and spreadsheet results are consumed without an error check
    result = graphql(PRODUCTS_QUERY)
    for request in product_pages(result.data, templates_dir, template_extension):
        create_page(request)

    result = graphql(SHEET_QUERY)
    for request in sheet_pages(result.data, templates_dir, template_extension):
        create_page(request)
