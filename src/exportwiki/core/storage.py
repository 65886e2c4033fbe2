"""Read-only access to markdown pages of a workspace export."""

import logging
import re
from pathlib import Path

from exportwiki.core.identifiers import find_file_by_identifier
from exportwiki.core.metadata import MetadataReader
from exportwiki.core.models import PageContent

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".md"
UNTITLED = "Untitled"


class PageStorage:
    """Markdown pages of the export.

    Paths handed to this class are relative to the markdown root, as
    recorded in the navigation markup.
    """

    HEADING_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)
    IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")

    def __init__(
        self,
        base_path: Path,
        metadata: MetadataReader | None = None,
        icons: bool = True,
    ):
        self.base_path = base_path
        self.metadata = metadata
        self.icons = icons

    def resolve_path(self, relative_path: str) -> Path | None:
        """Full path of a page, or None if no such file exists."""
        path = self.base_path / relative_path
        return path if path.is_file() else None

    def _extract_title(self, content: str) -> str:
        match = self.HEADING_PATTERN.search(content)
        return match.group(1).strip() if match else UNTITLED

    def _extract_images(self, content: str) -> list[str]:
        """Local image references in body order."""
        return [
            m.group(2)
            for m in self.IMAGE_PATTERN.finditer(content)
            if not m.group(2).startswith(("http://", "https://"))
        ]

    def read_page(self, relative_path: str) -> PageContent | None:
        """Read a page. Returns None if the file does not exist."""
        path = self.resolve_path(relative_path)
        if path is None:
            return None

        content = path.read_text(encoding="utf-8", errors="replace")

        icon = None
        if self.icons and self.metadata is not None:
            icon = self.metadata.icon_for(path)

        return PageContent(
            title=self._extract_title(content),
            content=content,
            images=self._extract_images(content),
            icon=icon,
            file_path=relative_path,
        )

    def find_by_identifier(self, identifier: str) -> str | None:
        """Locate a page by the identifier embedded in its file name."""
        return find_file_by_identifier(self.base_path, identifier, PAGE_SUFFIX)
