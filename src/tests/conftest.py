"""Shared fixtures: a small workspace export on disk.

The export mirrors what the workspace tool produces: a markdown tree with
``index.html`` navigation, pages and CSV tables, plus an HTML tree
carrying icons and select-value colors.
"""

from pathlib import Path

import pytest

from exportwiki.config import Features, Settings

WORKSPACE_ID = "0a1b2c3d-4e5f-6789-abcd-ef0123456789"
PROJECTS_ID = "1f2e3d4c5b6a79880716253443526170"
ROADMAP_ID = "aaaa1111bbbb2222cccc3333dddd4444"
TASKS_ID = "bbbb1111cccc2222dddd3333eeee4444"
DOCS_ID = "cccc1111dddd2222eeee3333ffff4444"
SELF_LINK_ID = "dddd1111eeee2222ffff333300004444"
ARCHIVE_ID = "eeee1111ffff22220000333311114444"
SECTION_ID = "ffff1111000022221111333322224444"
NOTES_ID = "12341111aaaa2222bbbb3333cccc4444"
LOOSE_ID = "99998888777766665555444433332222"

PROJECTS_DIR = f"Projects {PROJECTS_ID}"
PROJECTS_DIR_URL = f"Projects%20{PROJECTS_ID}"

NAVIGATION = f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>Export</title></head><body>
<ul id="id::workspace-details" class="toggle"><li><details open=""><summary>Workspace details</summary>
<p>Workspace name: Acme Corp<br>Workspace identifier: {WORKSPACE_ID}</p></details></li></ul>
<ul>
<li><ul id="id::{PROJECTS_ID}" class="toggle"><li><details open=""><summary><a href="{PROJECTS_DIR_URL}.md">Projects</a></summary>
<li><ul id="id::{ROADMAP_ID}"><li><a href="{PROJECTS_DIR_URL}/Roadmap%20{ROADMAP_ID}.md">Roadmap</a></li></ul></li>
<li><ul id="id::{TASKS_ID}"><li><a href="{PROJECTS_DIR_URL}/Tasks%20{TASKS_ID}.csv">Tasks</a></li></ul></li>
</details></li></ul></li>
<li><ul id="id::{DOCS_ID}"><li><a href="https://example.com/docs">Docs</a></li></ul></li>
<li><ul id="id::{SELF_LINK_ID}"><li><a href="https://www.notion.so/acme/Board">Board</a></li></ul></li>
<li><ul id="id::{ARCHIVE_ID}"><li><a>Archive (Inline database)</a></li></ul></li>
<li><ul id="id::{SECTION_ID}" class="toggle"><li><details open=""><summary><a>Reference</a></summary>
<li><ul id="id::{NOTES_ID}"><li><a href="Reference/Notes%20{NOTES_ID}.md">Notes</a></li></ul></li>
</details></li></ul></li>
</ul>
</body></html>
"""

PROJECTS_PAGE = f"""# Projects

All active projects live here.

![Cover]({PROJECTS_DIR_URL}/cover.png)

See [Roadmap]({PROJECTS_DIR_URL}/Roadmap%20{ROADMAP_ID}.md) for dates.
"""

ROADMAP_PAGE = """# Roadmap

Quarterly **milestones** and `launch` plans.

---

![Diagram](diagram.png)
![Remote](https://example.com/remote.png)
![Diagram](diagram.png)
"""

NOTES_PAGE = "Meeting notes without a heading.\n\nThe telescope budget was approved.\n"

LOOSE_PAGE = "# Orphan\n\nThis page is not linked from the navigation.\n"

TASKS_CSV = "Name,Status\nWrite docs,Done\nShip release,In progress\n"
TASKS_ALL_CSV = "Name,Status\nWrite docs,Done\nShip release,In progress\nArchive old,Done\n"

PROJECTS_HTML = """<html><body><article><header>
<div class="page-header-icon"><span class="icon">🚀</span></div>
<h1 class="page-title">Projects</h1></header></article></body></html>
"""

ROADMAP_HTML = f"""<html><body><article><header>
<img class="icon" src="Roadmap%20{ROADMAP_ID}/icon.png"/>
<h1 class="page-title">Roadmap</h1></header></article></body></html>
"""

TASKS_HTML = """<html><body><table class="collection-content"><tbody>
<tr><td>Write docs</td><td><span class="selected-value select-value-color-green">Done</span></td></tr>
<tr><td>Ship release</td><td><span class="selected-value select-value-color-yellow">In progress</span></td></tr>
<tr><td>Archive old</td><td><span class="selected-value select-value-color-teal">Stale</span></td></tr>
</tbody></table></body></html>
"""

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def _write(path: Path, content: str | bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def markdown_root(tmp_path) -> Path:
    """Markdown export with navigation, pages and tables."""
    root = tmp_path / "markdown"
    _write(root / "index.html", NAVIGATION)
    _write(root / f"{PROJECTS_DIR}.md", PROJECTS_PAGE)
    _write(root / PROJECTS_DIR / f"Roadmap {ROADMAP_ID}.md", ROADMAP_PAGE)
    _write(root / PROJECTS_DIR / f"Tasks {TASKS_ID}.csv", TASKS_CSV)
    _write(root / PROJECTS_DIR / f"Tasks {TASKS_ID}_all.csv", TASKS_ALL_CSV)
    _write(root / PROJECTS_DIR / "cover.png", PNG_BYTES)
    _write(root / "Reference" / f"Notes {NOTES_ID}.md", NOTES_PAGE)
    _write(root / "Misc" / f"Orphan {LOOSE_ID}.md", LOOSE_PAGE)
    return root


@pytest.fixture
def html_root(tmp_path) -> Path:
    """HTML export carrying icons and colors."""
    root = tmp_path / "html"
    _write(root / f"{PROJECTS_DIR}.html", PROJECTS_HTML)
    _write(root / PROJECTS_DIR / f"Roadmap {ROADMAP_ID}.html", ROADMAP_HTML)
    _write(root / PROJECTS_DIR / f"Roadmap {ROADMAP_ID}" / "icon.png", PNG_BYTES)
    _write(root / PROJECTS_DIR / f"Tasks {TASKS_ID}.html", TASKS_HTML)
    return root


@pytest.fixture
def settings(markdown_root, html_root) -> Settings:
    return Settings(markdown_root=markdown_root, html_root=html_root)


@pytest.fixture
def settings_no_icons(markdown_root, html_root) -> Settings:
    return Settings(
        markdown_root=markdown_root,
        html_root=html_root,
        features=Features(icons=False),
    )
