import logging
from pathlib import Path
from typing import Any, Callable, Optional

from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin

from plugins.content_fields.images import frontmatter_images_to_relative
from plugins.content_fields.nodes import (
    FILE_TYPE,
    MARKDOWN_TYPE,
    FileNode,
    MarkdownNode,
    NodeInternal,
    NodeStore,
)
from plugins.content_fields.slugs import derive_content_type, derive_slug

log = logging.getLogger("mkdocs.plugins.content_fields")


def project_root(config) -> Path:
    """Directory holding mkdocs.yml, or the working directory when unknown."""
    config_file_path = config.get("config_file_path")
    if config_file_path:
        return Path(config_file_path).resolve().parent
    return Path.cwd()


def on_create_node(
    node,
    create_node_field: Callable[..., None],
    get_node: Callable[[Optional[str]], Any],
    static_dir: Optional[Path] = None,
) -> None:
    """
    Attach ``slug`` and ``contentType`` fields to Markdown content nodes.

    Front matter images are normalized for every node; nodes of any other
    kind get no fields.
    """
    frontmatter_images_to_relative(node, get_node, static_dir)

    if node.internal.type != MARKDOWN_TYPE:
        return

    file_node = get_node(node.parent)
    relative_path = file_node.relative_path

    slug = derive_slug(node.frontmatter, relative_path)
    create_node_field(node=node, name="slug", value=slug)
    create_node_field(
        node=node, name="contentType", value=derive_content_type(relative_path)
    )


class ContentFieldsPlugin(BasePlugin):
    """
    Exposes derived ``slug`` and ``contentType`` fields on MkDocs pages.

    Every docs page is treated as a Markdown content node backed by its
    source file; the derived values land in ``page.meta["fields"]``.
    """

    config_scheme = (("static_dir", c.Type(str, default="")),)

    def __init__(self):
        super().__init__()
        self.static_dir: Optional[Path] = None

    def on_config(self, config, **kwargs):
        static_dir = self.config.get("static_dir")
        if static_dir:
            self.static_dir = (project_root(config) / static_dir).resolve()
            if not self.static_dir.is_dir():
                log.warning(
                    f"[content_fields] static_dir not found at {self.static_dir}; "
                    "front matter images will not be rewritten"
                )
        return config

    def on_page_markdown(self, markdown, page, config, files):
        store = NodeStore()
        src_uri = page.file.src_uri
        file_node = store.create_node(
            FileNode(
                id=f"file:{src_uri}",
                internal=NodeInternal(type=FILE_TYPE),
                relative_path=src_uri,
                absolute_path=page.file.abs_src_path,
            )
        )
        node = MarkdownNode(
            id=f"markdown:{src_uri}",
            parent=file_node.id,
            internal=NodeInternal(type=MARKDOWN_TYPE),
            body=markdown,
        )
        # Share the page's meta dict so image rewrites are visible to the theme
        node.frontmatter = page.meta
        store.create_node(node)

        on_create_node(node, store.create_node_field, store.get_node, self.static_dir)

        page.meta["fields"] = dict(node.fields)
        log.debug(f"[content_fields] {src_uri}: {node.fields}")
        return markdown
