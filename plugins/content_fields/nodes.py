"""
In-memory node registry used while sourcing content.

Nodes mirror what a content-ingestion step produces: a ``File`` node per
source file and a ``MarkdownRemark`` node per parsed Markdown file, linked
through ``parent``.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

MARKDOWN_TYPE = "MarkdownRemark"
FILE_TYPE = "File"


class NodeInternal(BaseModel):
    type: str


class Node(BaseModel):
    id: str
    parent: Optional[str] = None
    internal: NodeInternal
    frontmatter: Dict[str, Any] = Field(default_factory=dict)
    # Populated by on_create_node hooks
    fields: Dict[str, Any] = Field(default_factory=dict)


class FileNode(Node):
    relative_path: str
    absolute_path: Optional[str] = None


class MarkdownNode(Node):
    body: str = ""


class NodeStore:
    """Registry of nodes keyed by id, preserving creation order."""

    def __init__(self):
        self._nodes: Dict[str, Node] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def create_node(self, node: Node) -> Node:
        self._nodes[node.id] = node
        return node

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def create_node_field(self, node: Node, name: str, value: Any) -> None:
        node.fields[name] = value

    def nodes_of_type(self, node_type: str) -> List[Node]:
        return [n for n in self._nodes.values() if n.internal.type == node_type]
