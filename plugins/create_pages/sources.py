"""
Local query adapter for the page creation pipeline.

Markdown content is sourced from a directory into a ``NodeStore`` (running
node hooks as it goes); products and spreadsheet rows are read from exported
feed files. Queries are answered with a ``QueryResult`` of ``data``/``errors``.
"""

import csv
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml

from plugins.content_fields.nodes import (
    FILE_TYPE,
    MARKDOWN_TYPE,
    FileNode,
    MarkdownNode,
    NodeInternal,
    NodeStore,
)
from plugins.create_pages.models import QueryResult

log = logging.getLogger("mkdocs.plugins.create_pages")

FM_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)

# "dddd MMM DD, YYYY"
DATEADDED_FORMAT = "%A %b %d, %Y"
# Spreadsheet exports commonly write US-style dates
SHEET_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%Y %H:%M:%S")

NodeHook = Callable[..., None]


def resolvable_extensions() -> List[str]:
    """Extra file extensions the build treats as loadable data."""
    return [".json"]


def split_front_matter(source_text: str):
    """
    Return (front_matter_dict, body_text). If no FM, dict={} and body=source_text.

    Raises:
        yaml.YAMLError: the front matter block is not valid YAML.
    """
    m = FM_PATTERN.match(source_text)
    if not m:
        return {}, source_text
    fm = yaml.safe_load(m.group(1)) or {}
    if not isinstance(fm, dict):
        raise yaml.YAMLError(f"front matter must be a mapping, got {type(fm).__name__}")
    return fm, source_text[m.end() :]


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 (including a trailing ``Z``) or m/d/Y sheet date."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in SHEET_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def sort_and_format_rows(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort rows newest first by ``dateadded`` and format the date for display."""
    dated = []
    undated = []
    for row in rows:
        parsed = parse_date(row.get("dateadded"))
        if parsed is None and row.get("dateadded"):
            log.warning(
                f"[create_pages] unparseable dateadded {row.get('dateadded')!r} "
                f"for article {row.get('articleid')!r}; sorting it last"
            )
        (dated if parsed else undated).append((parsed, row))

    # Mixed naive/aware values cannot be compared; compare on wall-clock time
    dated.sort(key=lambda pair: pair[0].replace(tzinfo=None), reverse=True)

    out = []
    for parsed, row in dated:
        out.append({**row, "dateadded": parsed.strftime(DATEADDED_FORMAT)})
    out.extend(row for _, row in undated)
    return out


class LocalQueryEngine:
    def __init__(
        self,
        store: NodeStore,
        products_file: Optional[Path] = None,
        sheet_file: Optional[Path] = None,
    ):
        self.store = store
        self.products_file = Path(products_file) if products_file else None
        self.sheet_file = Path(sheet_file) if sheet_file else None
        self.source_errors: List[str] = []

    # Content sourcing

    def source_content(self, content_dir: Path, hooks: Iterable[NodeHook] = ()) -> int:
        """Create File and Markdown nodes for every *.md under ``content_dir``."""
        content_dir = Path(content_dir)
        hooks = list(hooks)
        if not content_dir.is_dir():
            log.warning(f"[create_pages] content directory not found at {content_dir}")
            return 0

        sourced = 0
        for md_path in sorted(content_dir.rglob("*.md")):
            rel_path = md_path.relative_to(content_dir).as_posix()
            file_node = self._create(
                FileNode(
                    id=f"file:{rel_path}",
                    internal=NodeInternal(type=FILE_TYPE),
                    relative_path=rel_path,
                    absolute_path=str(md_path.resolve()),
                ),
                hooks,
            )

            text = md_path.read_text(encoding="utf-8")
            try:
                frontmatter, body = split_front_matter(text)
            except yaml.YAMLError as exc:
                self.source_errors.append(f"{rel_path}: invalid front matter: {exc}")
                continue

            self._create(
                MarkdownNode(
                    id=f"markdown:{rel_path}",
                    parent=file_node.id,
                    internal=NodeInternal(type=MARKDOWN_TYPE),
                    frontmatter=frontmatter,
                    body=body,
                ),
                hooks,
            )
            sourced += 1

        log.info(f"[create_pages] sourced {sourced} markdown files from {content_dir}")
        return sourced

    def _create(self, node, hooks: List[NodeHook]):
        self.store.create_node(node)
        for hook in hooks:
            hook(node, self.store.create_node_field, self.store.get_node)
        return node

    # Queries

    def __call__(self, document: Dict[str, Any]) -> QueryResult:
        return self.query(document)

    def query(self, document: Dict[str, Any]) -> QueryResult:
        source = document.get("source")
        if source == "markdown":
            return self._query_markdown(document.get("limit"))
        if source == "products":
            return self._query_products()
        if source == "sheet_rows":
            return self._query_sheet_rows()
        return QueryResult(errors=[f"Unknown query source: {source!r}"])

    def _query_markdown(self, limit: Optional[int]) -> QueryResult:
        nodes = self.store.nodes_of_type(MARKDOWN_TYPE)
        if limit is not None:
            nodes = nodes[:limit]
        records = [
            {
                "id": node.id,
                "frontmatter": {
                    "template": node.frontmatter.get("template"),
                    "title": node.frontmatter.get("title"),
                },
                "fields": {
                    "slug": node.fields.get("slug"),
                    "contentType": node.fields.get("contentType"),
                },
            }
            for node in nodes
        ]
        return QueryResult(data={"markdown": records}, errors=list(self.source_errors))

    def _query_products(self) -> QueryResult:
        if self.products_file is None:
            return QueryResult(data={"products": []})
        if self.products_file.suffix not in resolvable_extensions():
            return QueryResult(
                errors=[f"Unsupported product feed extension: {self.products_file.name}"]
            )
        try:
            feed = self._load_json(self.products_file)
        except (OSError, json.JSONDecodeError) as exc:
            return QueryResult(errors=[f"Unable to read product feed: {exc}"])

        products = feed.get("products", []) if isinstance(feed, dict) else feed
        return QueryResult(
            data={"products": [{"handle": p.get("handle")} for p in products]}
        )

    def _query_sheet_rows(self) -> QueryResult:
        if self.sheet_file is None:
            return QueryResult(data={"rows": []})
        try:
            if self.sheet_file.suffix == ".csv":
                with self.sheet_file.open("r", encoding="utf-8", newline="") as fh:
                    rows = list(csv.DictReader(fh))
            else:
                rows = self._load_json(self.sheet_file)
                if isinstance(rows, dict):
                    rows = rows.get("rows", [])
        except (OSError, json.JSONDecodeError, csv.Error) as exc:
            return QueryResult(errors=[f"Unable to read sheet export: {exc}"])

        return QueryResult(data={"rows": sort_and_format_rows(rows)})

    @staticmethod
    def _load_json(path: Path):
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
