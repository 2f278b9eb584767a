import functools
import logging
import os
import posixpath
from pathlib import Path
from typing import List, Optional

import yaml
from mkdocs.config import config_options as c
from mkdocs.config.defaults import MkDocsConfig
from mkdocs.plugins import BasePlugin
from mkdocs.structure.files import File, Files

from plugins.content_fields.nodes import MARKDOWN_TYPE, NodeStore
from plugins.content_fields.plugin import on_create_node, project_root
from plugins.create_pages.models import PageRequest
from plugins.create_pages.pipeline import create_pages
from plugins.create_pages.sources import LocalQueryEngine

log = logging.getLogger("mkdocs.plugins.create_pages")


def page_src_uri(path: str) -> Optional[str]:
    """Map a page path to the docs-relative source of a generated page.

    ``/`` -> ``index.md``, ``/product/foo/`` -> ``product/foo/index.md``.
    Returns None when the normalized path climbs above the site root.
    """
    route = posixpath.normpath(path.replace("\\", "/").strip("/") or ".")
    if route == ".":
        return "index.md"
    if route == ".." or route.startswith("../"):
        return None
    return f"{route}/index.md"


def render_page_source(template: str, context: dict, body: str = "") -> str:
    """Build Markdown with YAML front matter selecting ``template``."""
    fm_obj = {"template": template, **context}
    fm_yaml = yaml.safe_dump(
        fm_obj, sort_keys=False, allow_unicode=True, width=4096
    ).strip()
    return f"---\n{fm_yaml}\n---\n\n{body.strip()}\n"


class CreatePagesPlugin(BasePlugin):
    """
    Creates site pages from Markdown content, a product feed and a
    spreadsheet export.

    Configuration options (paths relative to mkdocs.yml):
    - content_dir (str): Markdown content sourced into nodes.
    - templates_dir (str): Page templates; added to the theme search path.
    - template_extension (str): Extension appended to template names.
    - products_file (str): JSON product feed. Empty disables product pages.
    - sheet_file (str): CSV or JSON spreadsheet export. Empty disables blog pages.
    - static_dir (str): Root for site-absolute front matter image paths.
    """

    config_scheme = (
        ("content_dir", c.Type(str, default="src/content")),
        ("templates_dir", c.Type(str, default="src/templates")),
        ("template_extension", c.Type(str, default=".html")),
        ("products_file", c.Type(str, default="")),
        ("sheet_file", c.Type(str, default="")),
        ("static_dir", c.Type(str, default="")),
    )

    def __init__(self):
        super().__init__()
        self.pages: List[PageRequest] = []
        self.store: Optional[NodeStore] = None
        self.root: Optional[Path] = None

    def _resolve(self, key: str) -> Optional[Path]:
        value = self.config[key]
        if not value:
            return None
        return (self.root / value).resolve()

    @property
    def templates_dir(self) -> Path:
        return self._resolve("templates_dir") or self.root

    def on_config(self, config: MkDocsConfig):
        self.root = project_root(config)
        templates_dir = self.templates_dir
        if templates_dir.is_dir():
            config.theme.dirs.insert(0, str(templates_dir))
            log.debug(f"[create_pages] added {templates_dir} to theme dirs")
        else:
            log.warning(f"[create_pages] templates directory not found at {templates_dir}")
        return config

    def on_files(self, files: Files, config: MkDocsConfig) -> Files:
        if self.root is None:
            self.root = project_root(config)

        self.pages = []
        self.store = NodeStore()
        engine = LocalQueryEngine(
            self.store,
            products_file=self._resolve("products_file"),
            sheet_file=self._resolve("sheet_file"),
        )
        hook = functools.partial(on_create_node, static_dir=self._resolve("static_dir"))
        content_dir = self._resolve("content_dir")
        if content_dir is not None:
            engine.source_content(content_dir, hooks=[hook])

        create_pages(
            engine,
            self.pages.append,
            self.templates_dir,
            self.config["template_extension"],
        )

        for request in self.pages:
            self._add_page(request, files, config)
        log.info(f"[create_pages] created {len(self.pages)} pages")
        return files

    def _add_page(self, request: PageRequest, files: Files, config: MkDocsConfig) -> None:
        src_uri = page_src_uri(request.path)
        if src_uri is None:
            log.warning(f"[create_pages] skipping {request.path}: outside the site root")
            return

        component = Path(request.component)
        if not component.is_file():
            log.warning(f"[create_pages] template not found: {component}")

        try:
            template = component.relative_to(self.templates_dir).as_posix()
        except ValueError:
            template = os.path.basename(request.component)

        body = ""
        node = self.store.get_node(request.context.get("id"))
        if node is not None and node.internal.type == MARKDOWN_TYPE:
            body = node.body

        existing = files.get_file_from_path(src_uri)
        if existing is not None:
            log.warning(
                f"[create_pages] {request.path} replaces existing page {existing.src_uri}"
            )
            files.remove(existing)

        files.append(
            File.generated(
                config,
                src_uri,
                content=render_page_source(template, request.context, body),
            )
        )
