"""Navigation tree builder.

Parses the ``index.html`` navigation markup of a workspace export into a
tree of :class:`NavNode`. The markup is a nested list: every page is a
``<ul id="id::MARKER">`` holding one anchor (a file link, or a bare label
for section headers and inline databases) and a ``<li><ul ...>`` per
sub-page, interleaved with markup that carries no structure.
"""

import html
import logging
import re
from pathlib import Path

from exportwiki.core.identifiers import (
    SHORT_ID_LENGTH,
    clean_title,
    extract_identifier,
    safe_unquote,
    slugify,
)
from exportwiki.core.models import NavNode, WorkspaceData

logger = logging.getLogger(__name__)

NAVIGATION_FILENAME = "index.html"

LIST_OPEN = re.compile(r'<ul\s+id="id::([^"]*)"[^>]*>')
LIST_CLOSE = "</ul>"
FILE_LINK = re.compile(r'<a\s+href="([^"]*)"[^>]*>([^<]*)</a>')
LABEL = re.compile(r"<a>([^<]*)</a>")
ANY_TAG = re.compile(r"<[^>]+>")

WORKSPACE_ID = re.compile(r"Workspace identifier:\s*([a-f0-9-]+)", re.IGNORECASE)
WORKSPACE_NAME = re.compile(r"Workspace name:\s*([^<]+)", re.IGNORECASE)

WORKSPACE_MARKER = "Workspace"
INLINE_DB_MARKER = "(Inline database)"
# Links back to the exporting service itself are not part of the workspace
SELF_LINK_DOMAIN = "notion.so"


class NavigationParser:
    """Recursive-descent parser over navigation markup.

    Each ``_parse_*`` method takes a cursor position and returns what it
    parsed together with the position just past it.
    """

    def __init__(self, markup: str):
        self.markup = markup

    def parse(self) -> WorkspaceData:
        """Parse the whole document."""
        id_match = WORKSPACE_ID.search(self.markup)
        name_match = WORKSPACE_NAME.search(self.markup)
        return WorkspaceData(
            id=id_match.group(1) if id_match else "",
            name=name_match.group(1).strip() if name_match else "Workspace",
            tree=self._parse_top_level(self._tree_start()),
        )

    def _tree_start(self) -> int:
        """Position after the workspace details block, or 0."""
        details = self.markup.find("Workspace name:")
        if details == -1:
            return 0
        end = self.markup.find("</li>", details)
        return end if end != -1 else 0

    def _parse_top_level(self, pos: int) -> list[NavNode]:
        tree: list[NavNode] = []
        while pos < len(self.markup):
            start = self.markup.find('<ul id="id::', pos)
            if start == -1:
                break
            # Top-level pages sit directly inside an <li>
            if "<li>" not in self.markup[max(0, start - 10) : start]:
                pos = start + 1
                continue
            node, pos = self._parse_list(start)
            if node is not None:
                tree.append(node)
        return tree

    def _parse_list(self, pos: int) -> tuple[NavNode | None, int]:
        """Parse one ``<ul id="id::...">`` element starting at ``pos``."""
        opening = LIST_OPEN.match(self.markup, pos)
        if opening is None:
            return None, pos
        marker = opening.group(1)
        pos = opening.end()

        anchor: _Anchor | None = None
        children: list[NavNode] = []

        while pos < len(self.markup):
            if self.markup.startswith(LIST_CLOSE, pos):
                pos += len(LIST_CLOSE)
                break

            if LIST_OPEN.match(self.markup, pos):
                child, pos = self._parse_list(pos)
                if child is not None:
                    children.append(child)
                continue

            link = FILE_LINK.match(self.markup, pos)
            if link is not None:
                if anchor is None:
                    anchor = _Anchor.from_link(link.group(1), link.group(2))
                pos = link.end()
                continue

            label = LABEL.match(self.markup, pos)
            if label is not None:
                if anchor is None:
                    anchor = _Anchor.from_label(label.group(1))
                pos = label.end()
                continue

            tag = ANY_TAG.match(self.markup, pos)
            pos = tag.end() if tag is not None else pos + 1

        return _build_node(marker, anchor or _Anchor(), children), pos


class _Anchor:
    """What a list node's anchor says about the node."""

    def __init__(
        self,
        title: str = "",
        file_path: str | None = None,
        external_url: str | None = None,
        is_inline_db: bool = False,
    ):
        self.title = title
        self.file_path = file_path
        self.external_url = external_url
        self.is_inline_db = is_inline_db

    @classmethod
    def from_link(cls, href: str, text: str) -> "_Anchor":
        href = html.unescape(href)
        title = clean_title(safe_unquote(text))
        if href.startswith(("http://", "https://")):
            return cls(title=title, external_url=href)

        file_path = html.unescape(safe_unquote(href))
        # The HTML export links .html files; content is read from the .md tree
        if file_path.endswith(".html"):
            file_path = file_path[: -len(".html")] + ".md"
        return cls(title=title, file_path=file_path)

    @classmethod
    def from_label(cls, text: str) -> "_Anchor":
        return cls(title=clean_title(text), is_inline_db=INLINE_DB_MARKER in text)


def _build_node(marker: str, anchor: _Anchor, children: list[NavNode]) -> NavNode | None:
    """Apply pruning rules and derive id and slug. None means pruned."""
    if WORKSPACE_MARKER in marker or WORKSPACE_MARKER in anchor.title:
        return None
    if anchor.external_url and SELF_LINK_DOMAIN in anchor.external_url:
        return None
    if anchor.is_inline_db and not children:
        return None

    node_id = (
        extract_identifier(marker)
        or extract_identifier(anchor.file_path or "")
        or extract_identifier(anchor.title)
        or re.sub(r"[^a-z0-9]", "", marker, flags=re.IGNORECASE)
    )
    label = anchor.title or marker
    slug = "-".join(part for part in (slugify(label), node_id[:SHORT_ID_LENGTH]) if part)

    return NavNode(
        id=node_id,
        title=label,
        slug=slug,
        file_path=anchor.file_path,
        is_external=anchor.external_url is not None,
        external_url=anchor.external_url,
        is_csv=bool(anchor.file_path and anchor.file_path.endswith(".csv")),
        is_inline_db=anchor.is_inline_db,
        children=children,
    )


def parse_navigation(markup: str) -> WorkspaceData:
    """Parse navigation markup into a workspace tree."""
    return NavigationParser(markup).parse()


def find_navigation_file(markdown_root: Path, html_root: Path | None = None) -> Path | None:
    """Locate the navigation file, preferring the markdown export."""
    candidates = [markdown_root / NAVIGATION_FILENAME]
    if html_root is not None:
        candidates.append(html_root / NAVIGATION_FILENAME)
    for path in candidates:
        if path.is_file():
            return path
    return None


def load_workspace(markdown_root: Path, html_root: Path | None = None) -> WorkspaceData:
    """Read and parse the workspace navigation.

    Always returns a workspace: a missing or unparseable navigation file
    gives an empty tree.
    """
    path = find_navigation_file(markdown_root, html_root)
    if path is None:
        logger.debug("No %s under %s", NAVIGATION_FILENAME, markdown_root)
        return WorkspaceData()

    try:
        markup = path.read_text(encoding="utf-8", errors="replace")
        return parse_navigation(markup)
    except (OSError, RecursionError, ValueError):
        logger.exception("Failed to parse navigation file %s", path)
        return WorkspaceData()


def _ids_match(node_id: str, query: str) -> bool:
    # Either id may be a truncated form of the other. Unrelated pages whose
    # ids share the first 8 characters will also match.
    if not node_id:
        return False
    return (
        node_id == query
        or node_id.startswith(query)
        or query.startswith(node_id[:SHORT_ID_LENGTH])
    )


def find_by_id(tree: list[NavNode], node_id: str) -> NavNode | None:
    """Find a node by identifier prefix, depth-first pre-order."""
    if not node_id:
        return None
    for node in tree:
        if _ids_match(node.id, node_id):
            return node
        found = find_by_id(node.children, node_id)
        if found is not None:
            return found
    return None


def find_by_slug(tree: list[NavNode], slug: str) -> NavNode | None:
    """Find a node whose slug equals ``slug`` exactly."""
    for node in tree:
        if node.slug == slug:
            return node
        found = find_by_slug(node.children, slug)
        if found is not None:
            return found
    return None


def _normalize_path(path: str) -> str:
    return safe_unquote(path).replace("\\", "/").lower()


def find_by_path(tree: list[NavNode], file_path: str) -> NavNode | None:
    """Find the node backed by ``file_path``.

    Matches when the node's path equals, or ends with, the normalized
    target, so relative links like ``Sub%20Page%20abc.md`` resolve.
    """
    target = _normalize_path(file_path)
    while target.startswith("./"):
        target = target.removeprefix("./")
    if not target:
        return None
    for node in flatten_tree(tree):
        if node.file_path:
            candidate = _normalize_path(node.file_path)
            if candidate == target or candidate.endswith("/" + target):
                return node
    return None


def get_breadcrumbs(tree: list[NavNode], node_id: str) -> list[NavNode]:
    """Return the path from a root node to the node matching ``node_id``."""

    def search(nodes: list[NavNode], trail: list[NavNode]) -> list[NavNode] | None:
        for node in nodes:
            path = [*trail, node]
            if _ids_match(node.id, node_id):
                return path
            found = search(node.children, path)
            if found is not None:
                return found
        return None

    if not node_id:
        return []
    return search(tree, []) or []


def flatten_tree(tree: list[NavNode]) -> list[NavNode]:
    """All nodes in depth-first pre-order."""
    result: list[NavNode] = []
    for node in tree:
        result.append(node)
        result.extend(flatten_tree(node.children))
    return result
