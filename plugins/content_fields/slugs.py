import posixpath
import re
import unicodedata
from typing import Any, Dict, Tuple

# Word splitting compatible with lodash's kebabCase: acronyms, capitalised or
# lower-case runs, bare capitals, ordinals, digit runs, then any other letters.
WORD_RE = re.compile(
    r"[A-Z]{2,}(?=[A-Z][a-z]|[^A-Za-z]|$)"
    r"|[A-Z]?[a-z]+"
    r"|[A-Z]+"
    r"|(?i:[0-9]*(?:1st|2nd|3rd|(?![123])[0-9]th))(?=\b|[A-Z_])"
    r"|[0-9]+"
    r"|[^\W\d_]+"
)
APOSTROPHE_RE = re.compile(r"['’]")

HOME_DIR = "pages"
HOME_NAME = "home"


def deburr(text: str) -> str:
    """Strip combining marks so accented letters become their base letter."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def kebab_case(text: Any) -> str:
    """
    Lower-case ``text`` and join its words with hyphens.

    ``"My Post"`` -> ``"my-post"``, ``"fooBar"`` -> ``"foo-bar"``,
    ``"news/local"`` -> ``"news-local"``.
    """
    if text is None:
        return ""
    cleaned = APOSTROPHE_RE.sub("", deburr(str(text)))
    return "-".join(word.lower() for word in WORD_RE.findall(cleaned))


def parse_relative_path(relative_path: str) -> Tuple[str, str]:
    """Return ``(dir, name)`` for a content-relative path, extension dropped."""
    normalized = relative_path.replace("\\", "/")
    directory, base = posixpath.split(normalized)
    name, _ = posixpath.splitext(base)
    return directory, name


def derive_slug(frontmatter: Dict[str, Any], relative_path: str) -> str:
    directory, name = parse_relative_path(relative_path)
    frontmatter = frontmatter or {}

    if frontmatter.get("slug"):
        return f"/{str(frontmatter['slug']).lower()}/"
    # home page gets root slug
    if name == HOME_NAME and directory == HOME_DIR:
        return "/"
    if frontmatter.get("title"):
        return f"/{kebab_case(directory)}/{kebab_case(frontmatter['title'])}/"
    if directory == "":
        return f"/{name}/"
    return f"/{directory}/"


def derive_content_type(relative_path: str) -> str:
    directory, _ = parse_relative_path(relative_path)
    return directory
