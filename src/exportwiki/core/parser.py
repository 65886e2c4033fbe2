"""Markdown rendering for exported pages."""

import posixpath
from typing import Callable
from urllib.parse import quote
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import SimpleTagInlineProcessor
from markdown.treeprocessors import Treeprocessor

from exportwiki.core.identifiers import safe_unquote

# Pattern for strikethrough: ~~text~~
# Group 2 must contain the text (SimpleTagInlineProcessor expectation)
STRIKETHROUGH_PATTERN = r"(~~)(.*?)~~"

IMAGE_ENDPOINT = "/api/image"
PAGE_ROUTE = "/page"


class StrikethroughExtension(Extension):
    """Markdown extension for ~~strikethrough~~ text."""

    def extendMarkdown(self, md: Markdown) -> None:
        """Add strikethrough pattern to markdown parser."""
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_PATTERN, "del"),
            "strikethrough",
            50,
        )


def image_url(src: str, base_dir: str) -> str:
    """URL serving a local image referenced from a page in ``base_dir``.

    ``src`` is kept percent-encoded as the export wrote it; the image
    endpoint decodes it.
    """
    if src.startswith("/"):
        path = src[1:]
    elif base_dir:
        path = posixpath.join(quote(base_dir), src)
    else:
        path = src
    return f"{IMAGE_ENDPOINT}?path={quote(path, safe='')}"


def _is_remote(target: str) -> bool:
    return target.startswith(("http://", "https://", "mailto:", "data:", "#"))


class ExportLinkTreeprocessor(Treeprocessor):
    """Point local images at the image endpoint and page links at page routes."""

    def __init__(
        self,
        md: Markdown,
        base_dir: str,
        resolve_link: Callable[[str], str | None],
    ):
        super().__init__(md)
        self.base_dir = base_dir
        self.resolve_link = resolve_link

    def run(self, root: Element) -> None:
        for el in root.iter("img"):
            src = el.get("src", "")
            if src and not _is_remote(src):
                el.set("src", image_url(src, self.base_dir))
                el.set("loading", "lazy")

        for el in root.iter("a"):
            href = el.get("href", "")
            if not href or _is_remote(href) or not href.split("#", 1)[0].endswith(".md"):
                continue
            path = posixpath.normpath(
                posixpath.join(self.base_dir, safe_unquote(href.split("#", 1)[0]))
            )
            slug = self.resolve_link(path)
            if slug:
                el.set("href", f"{PAGE_ROUTE}/{slug}")


class ExportLinkExtension(Extension):
    """Markdown extension rewriting export-relative links."""

    def __init__(
        self,
        base_dir: str = "",
        resolve_link: Callable[[str], str | None] | None = None,
        **kwargs,
    ):
        self.base_dir = base_dir
        self.resolve_link = resolve_link or (lambda path: None)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:
        """Run after inline patterns have produced img and a elements."""
        md.treeprocessors.register(
            ExportLinkTreeprocessor(md, self.base_dir, self.resolve_link),
            "export_links",
            15,
        )


def create_parser(
    base_dir: str = "",
    resolve_link: Callable[[str], str | None] | None = None,
    heading_anchors: bool = True,
) -> Markdown:
    """Create a Markdown parser for exported pages.

    Args:
        base_dir: Directory of the page, relative to the markdown export.
                  Relative image and link targets are resolved against it.
        resolve_link: Maps an export-relative ``.md`` path to a page slug.
        heading_anchors: Add ids to headings and build a table of contents.

    Returns:
        Configured Markdown parser instance.
    """
    extensions = [
        # Core formatting
        "extra",  # Includes: abbreviations, attr_list, def_list, fenced_code, footnotes, md_in_html, tables
        "sane_lists",  # Better list handling
        "smarty",  # Smart quotes and dashes
        # PyMdown extensions
        "pymdownx.tasklist",  # Task lists with checkboxes
        # Custom extensions
        StrikethroughExtension(),  # ~~strikethrough~~
        ExportLinkExtension(base_dir=base_dir, resolve_link=resolve_link),
    ]
    if heading_anchors:
        extensions.append("toc")
    return Markdown(extensions=extensions)


def render_page(
    content: str,
    base_dir: str = "",
    resolve_link: Callable[[str], str | None] | None = None,
    heading_anchors: bool = True,
) -> tuple[str, str]:
    """Render page markdown.

    Returns:
        Tuple of (html_content, toc_html). The TOC is empty when heading
        anchors are off.
    """
    parser = create_parser(base_dir, resolve_link, heading_anchors)
    html = parser.convert(content)
    toc_html = getattr(parser, "toc", "")
    return html, toc_html
