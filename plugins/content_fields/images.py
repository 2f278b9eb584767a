import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

log = logging.getLogger("mkdocs.plugins.content_fields")

IMAGE_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".webp",
    ".avif",
    ".bmp",
    ".ico",
    ".tif",
    ".tiff",
)


def frontmatter_images_to_relative(
    node, get_node: Callable[[Optional[str]], Any], static_dir: Optional[Path]
) -> None:
    """
    Rewrite site-absolute image paths in ``node.frontmatter`` so they are
    relative to the directory holding the node's source file.

    Only values naming an existing file under ``static_dir`` are touched;
    nodes without front matter or without a file parent are left as-is.
    """
    frontmatter = getattr(node, "frontmatter", None)
    if not frontmatter or static_dir is None:
        return

    file_node = get_node(getattr(node, "parent", None))
    abs_path = getattr(file_node, "absolute_path", None)
    if not abs_path:
        return

    base_dir = Path(abs_path).parent
    static_root = Path(static_dir)

    def convert(value):
        if isinstance(value, dict):
            return {key: convert(val) for key, val in value.items()}
        if isinstance(value, list):
            return [convert(item) for item in value]
        if not isinstance(value, str) or not value.startswith("/"):
            return value
        if not value.lower().endswith(IMAGE_EXTENSIONS):
            return value
        candidate = static_root / value.lstrip("/")
        if not candidate.is_file():
            return value
        relative = Path(os.path.relpath(candidate, base_dir)).as_posix()
        log.debug(f"[content_fields] {node.id}: {value} -> {relative}")
        return relative

    for key in list(frontmatter.keys()):
        frontmatter[key] = convert(frontmatter[key])
