"""Workspace facade used by the web layer.

Ties the navigation tree, page and table readers, metadata and search
together behind lookups by slug or identifier.
"""

import logging
from pathlib import Path

from exportwiki.config import Settings
from exportwiki.core.errors import PathViolationError
from exportwiki.core.identifiers import SHORT_ID_LENGTH, safe_unquote
from exportwiki.core.metadata import MetadataReader
from exportwiki.core.models import (
    NavNode,
    PageContent,
    SearchDocument,
    SearchResult,
    TableView,
    WorkspaceData,
)
from exportwiki.core.navigation import find_by_slug, get_breadcrumbs, load_workspace
from exportwiki.core.search import SearchIndex
from exportwiki.core.storage import PageStorage
from exportwiki.core.tables import TableReader

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def identifier_from_slug(slug_or_id: str) -> str | None:
    """The identifier part of a slug: its last dash-separated segment."""
    candidate = slug_or_id.rsplit("-", 1)[-1]
    return candidate if len(candidate) >= SHORT_ID_LENGTH else None


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class Workspace:
    """Read-only view of one exported workspace."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.markdown_root = settings.markdown_root
        self.html_root = settings.html_root
        self.metadata = MetadataReader(self.markdown_root, self.html_root)
        self.pages = PageStorage(
            self.markdown_root,
            metadata=self.metadata,
            icons=settings.features.icons,
        )
        self.tables = TableReader(self.markdown_root)
        self.search_index = SearchIndex(
            self.load_tree,
            PageStorage(self.markdown_root),
            self.tables,
        )

    @property
    def icons_enabled(self) -> bool:
        return self.settings.features.icons and self.metadata.available

    def load_tree(self) -> WorkspaceData:
        """Parse the navigation markup. Not cached."""
        return load_workspace(self.markdown_root, self.html_root)

    def get_workspace(self) -> WorkspaceData:
        """The navigation tree, with icons when the HTML export is present."""
        workspace = self.load_tree()
        if not self.icons_enabled:
            return workspace
        return workspace.model_copy(update={"tree": [self._with_icon(n) for n in workspace.tree]})

    def _with_icon(self, node: NavNode) -> NavNode:
        icon = None
        if node.file_path:
            icon = self.metadata.icon_for(node.file_path, is_table=node.is_csv)
        return node.model_copy(
            update={
                "icon": icon,
                "children": [self._with_icon(child) for child in node.children],
            }
        )

    def get_page(self, slug_or_id: str) -> PageContent | None:
        """Resolve a page by slug, falling back to identifier search."""
        node = find_by_slug(self.load_tree().tree, slug_or_id)
        file_path = node.file_path if node is not None else None

        if file_path is None:
            identifier = identifier_from_slug(slug_or_id)
            if identifier:
                file_path = self.pages.find_by_identifier(identifier)
        if file_path is None:
            return None
        return self.pages.read_page(file_path)

    def get_table(self, slug_or_id: str) -> TableView | None:
        """Resolve a table by slug, falling back to identifier search."""
        node = find_by_slug(self.load_tree().tree, slug_or_id)
        file_path = node.file_path if node is not None and node.is_csv else None

        if file_path is None:
            identifier = identifier_from_slug(slug_or_id)
            if identifier:
                file_path = self.tables.find_by_identifier(identifier)
        if file_path is None:
            return None

        pair = self.tables.get_pair(file_path)
        if pair is None:
            return None

        colors = {}
        if self.icons_enabled:
            html_file = self.metadata.find_metadata_file_for_table(file_path)
            if html_file is not None:
                colors = self.metadata.extract_value_colors(html_file)

        return TableView(
            filtered=pair.filtered,
            all=pair.all,
            colors=colors,
            default_variant=self.settings.default_table_variant,
            file_path=file_path,
        )

    def get_breadcrumbs(self, node_id: str) -> list[NavNode]:
        """Nodes from the root to the node with ``node_id``."""
        return get_breadcrumbs(self.load_tree().tree, node_id)

    def get_image(self, relative_path: str) -> tuple[bytes, str] | None:
        """Read an image from either export.

        Raises:
            PathViolationError: If the path resolves outside both exports
                or contains a NUL byte.
        """
        decoded = safe_unquote(relative_path).lstrip("/")
        if "\x00" in decoded:
            logger.warning("Rejected image path with NUL byte: %r", relative_path)
            raise PathViolationError(relative_path)
        roots = [self.markdown_root.resolve()]
        if self.metadata.available:
            roots.append(self.html_root.resolve())

        candidates = [(root / decoded).resolve() for root in roots]
        path = next((c for c in candidates if c.is_file()), candidates[0])

        if not any(_is_within(path, root) for root in roots):
            logger.warning("Rejected image path outside workspace: %s", relative_path)
            raise PathViolationError(relative_path)
        if not path.is_file():
            return None

        mime_type = MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)
        return path.read_bytes(), mime_type

    def search(self, query: str, limit: int = 20) -> list[SearchResult]:
        return self.search_index.search(query, limit)

    def search_documents(self) -> list[SearchDocument]:
        return self.search_index.documents()
