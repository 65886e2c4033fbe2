"""Metadata from the optional HTML export.

The markdown export lacks page icons and select-value colors; the HTML
export of the same workspace carries both. Every lookup here degrades to
None (or an empty mapping) when the HTML export is not configured.
"""

import logging
import re
from pathlib import Path, PurePosixPath

from bs4 import BeautifulSoup

from exportwiki.core.identifiers import safe_unquote
from exportwiki.core.models import Icon, ValueColor

logger = logging.getLogger(__name__)

COLOR_CLASS = re.compile(r"select-value-color-(\w+)")
HTML_PARSER = "html.parser"


class MetadataReader:
    """Reads icons and value colors from the HTML export."""

    def __init__(self, markdown_root: Path, html_root: Path | None = None):
        self.markdown_root = markdown_root
        self.html_root = html_root

    @property
    def available(self) -> bool:
        """True when the HTML export is configured and present."""
        return self.html_root is not None and self.html_root.is_dir()

    def _load(self, html_path: Path) -> BeautifulSoup | None:
        if not html_path.is_file():
            return None
        try:
            markup = html_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            logger.warning("Cannot read metadata file %s", html_path)
            return None
        return BeautifulSoup(markup, HTML_PARSER)

    def _relative_to_markdown(self, content_path: Path | str) -> PurePosixPath:
        path = Path(content_path)
        if path.is_absolute():
            try:
                path = path.relative_to(self.markdown_root)
            except ValueError:
                pass
        return PurePosixPath(path.as_posix().lstrip("/"))

    def extract_icon(self, html_path: Path) -> Icon | None:
        """Return the page icon: an emoji span first, else an icon image.

        Image sources are returned as written in the file, relative to it.
        """
        soup = self._load(html_path)
        if soup is None:
            return None

        emoji = soup.find("span", class_="icon")
        if emoji is not None and emoji.get_text(strip=True):
            return Icon(kind="emoji", value=emoji.get_text(strip=True))

        image = soup.find("img", class_="icon")
        if image is not None and image.get("src"):
            return Icon(kind="image", value=image["src"])

        return None

    def find_metadata_file(self, content_path: Path | str) -> Path | None:
        """Map a markdown export file to its HTML export counterpart."""
        if not self.available:
            return None
        relative = self._relative_to_markdown(content_path)
        candidate = self.html_root / relative.with_suffix(".html")
        return candidate if candidate.is_file() else None

    def find_metadata_file_for_table(self, table_path: Path | str) -> Path | None:
        """Map a CSV export to the HTML table view.

        Tries ``Name.html`` beside the CSV, then ``Name/Name.html``.
        """
        if not self.available:
            return None
        relative = self._relative_to_markdown(table_path)
        name = relative.stem
        parent = self.html_root / relative.parent

        for candidate in (parent / f"{name}.html", parent / name / f"{name}.html"):
            if candidate.is_file():
                return candidate
        return None

    def extract_value_colors(self, html_path: Path) -> dict[str, ValueColor]:
        """Map each select value to its color. The last occurrence wins."""
        soup = self._load(html_path)
        if soup is None:
            return {}

        colors: dict[str, ValueColor] = {}
        for span in soup.find_all("span", class_=COLOR_CLASS):
            value = span.get_text().strip()
            match = COLOR_CLASS.search(" ".join(span.get("class", [])))
            if not value or match is None:
                continue
            try:
                colors[value] = ValueColor(match.group(1))
            except ValueError:
                colors[value] = ValueColor.DEFAULT
        return colors

    def resolve_icon(self, html_path: Path, icon: Icon) -> Icon:
        """Rewrite an image icon to a path relative to the HTML export root."""
        if icon.kind != "image" or icon.value.startswith(("http://", "https://")):
            return icon
        source = html_path.parent / safe_unquote(icon.value)
        try:
            value = source.resolve().relative_to(self.html_root.resolve()).as_posix()
        except ValueError:
            logger.warning("Icon %s points outside the HTML export", icon.value)
            return icon
        return Icon(kind="image", value=value)

    def icon_for(self, content_path: Path | str, is_table: bool = False) -> Icon | None:
        """Look up the icon for a page or table of the markdown export."""
        if is_table:
            html_path = self.find_metadata_file_for_table(content_path)
        else:
            html_path = self.find_metadata_file(content_path)
        if html_path is None:
            return None
        icon = self.extract_icon(html_path)
        return self.resolve_icon(html_path, icon) if icon is not None else None
