"""ExportWiki FastAPI application."""

import logging
import posixpath
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response

from exportwiki.config import settings
from exportwiki.core.errors import PathViolationError
from exportwiki.core.navigation import find_by_path
from exportwiki.core.parser import render_page
from exportwiki.core.workspace import Workspace

logger = logging.getLogger(__name__)

# Initialize workspace
workspace = Workspace(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: build the search index up front."""
    logger.info(
        "Serving export from %s (metadata: %s)",
        settings.markdown_root,
        settings.html_root if workspace.metadata.available else "none",
    )
    if settings.features.search:
        workspace.search_index.build()
    yield
    workspace.search_index.invalidate()


# Initialize app
app = FastAPI(
    title=settings.app_title,
    debug=settings.debug,
    lifespan=lifespan,
)


def _require_feature(enabled: bool) -> None:
    if not enabled:
        raise HTTPException(status_code=404, detail="Feature disabled")


@app.get("/api/config")
async def api_config():
    """Feature flags and display defaults for the client."""
    return {
        "app_title": settings.app_title,
        "default_table_variant": settings.default_table_variant,
        "features": settings.features.model_dump(),
    }


@app.get("/api/nav")
async def api_nav():
    """Navigation tree of the workspace."""
    return workspace.get_workspace().model_dump()


@app.get("/api/page/{slug}")
async def api_page(slug: str):
    """A page by slug or identifier, with rendered HTML."""
    page = workspace.get_page(slug)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")

    tree = workspace.load_tree().tree

    def resolve_link(path: str) -> str | None:
        node = find_by_path(tree, path)
        return node.slug if node is not None else None

    html_content, toc_html = render_page(
        page.content,
        base_dir=posixpath.dirname(page.file_path or ""),
        resolve_link=resolve_link,
        heading_anchors=settings.features.heading_anchors,
    )
    return {**page.model_dump(), "html": html_content, "toc": toc_html}


@app.get("/api/table/{slug}")
async def api_table(slug: str):
    """A table by slug or identifier: both variants and value colors."""
    table = workspace.get_table(slug)
    if table is None:
        raise HTTPException(status_code=404, detail="Table not found")
    return table.model_dump(mode="json")


@app.get("/api/breadcrumbs/{node_id}")
async def api_breadcrumbs(node_id: str):
    """Path from the root of the tree to a node."""
    _require_feature(settings.features.breadcrumbs)
    crumbs = workspace.get_breadcrumbs(node_id)
    return [{"id": n.id, "title": n.title, "slug": n.slug} for n in crumbs]


@app.get("/api/image")
async def api_image(path: str | None = None):
    """Serve an image from either export."""
    if not path:
        raise HTTPException(status_code=400, detail="Missing path parameter")
    try:
        image = workspace.get_image(path)
    except PathViolationError:
        raise HTTPException(status_code=403, detail="Invalid path")
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")

    content, mime_type = image
    return Response(
        content=content,
        media_type=mime_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )


# ========== Search ==========


@app.get("/api/search")
async def api_search(q: str | None = None, limit: int = Query(20, ge=1)):
    """Ranked full-text search."""
    _require_feature(settings.features.search)
    if not q:
        raise HTTPException(status_code=400, detail="Missing query parameter")
    results = workspace.search(q, limit)
    return {"results": [r.model_dump() for r in results]}


@app.post("/api/search")
async def api_search_documents():
    """The full search document set, for client-side indexing."""
    _require_feature(settings.features.search)
    return {"documents": [d.model_dump() for d in workspace.search_documents()]}
