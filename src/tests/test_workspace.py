"""Tests for the workspace facade: slug and identifier lookups, images."""

import pytest
from conftest import (
    LOOSE_ID,
    NOTES_ID,
    PNG_BYTES,
    PROJECTS_DIR,
    PROJECTS_ID,
    ROADMAP_ID,
    TASKS_ID,
)

from exportwiki.config import Settings
from exportwiki.core.errors import PathViolationError
from exportwiki.core.models import Icon, ValueColor
from exportwiki.core.navigation import find_by_id, flatten_tree
from exportwiki.core.workspace import Workspace, identifier_from_slug


@pytest.fixture
def workspace(settings):
    return Workspace(settings)


# ============================================================
# Slug helpers
# ============================================================


class TestIdentifierFromSlug:
    def test_slug(self):
        assert identifier_from_slug("roadmap-aaaa1111") == "aaaa1111"

    def test_bare_identifier(self):
        assert identifier_from_slug(ROADMAP_ID) == ROADMAP_ID

    def test_too_short(self):
        assert identifier_from_slug("my-page") is None


# ============================================================
# Navigation
# ============================================================


class TestGetWorkspace:
    def test_tree_with_icons(self, workspace):
        data = workspace.get_workspace()
        projects = find_by_id(data.tree, PROJECTS_ID)
        roadmap = find_by_id(data.tree, ROADMAP_ID)
        assert projects.icon == Icon(kind="emoji", value="🚀")
        assert roadmap.icon.kind == "image"
        assert find_by_id(data.tree, NOTES_ID).icon is None

    def test_icons_disabled(self, settings_no_icons):
        data = Workspace(settings_no_icons).get_workspace()
        assert all(n.icon is None for n in flatten_tree(data.tree))

    def test_without_html_export(self, markdown_root):
        data = Workspace(Settings(markdown_root=markdown_root)).get_workspace()
        assert len(data.tree) == 3
        assert all(n.icon is None for n in flatten_tree(data.tree))

    def test_empty_workspace(self, tmp_path):
        data = Workspace(Settings(markdown_root=tmp_path)).get_workspace()
        assert data.tree == []

    def test_breadcrumbs(self, workspace):
        crumbs = workspace.get_breadcrumbs(ROADMAP_ID[:8])
        assert [c.title for c in crumbs] == ["Projects", "Roadmap"]


# ============================================================
# Pages
# ============================================================


class TestGetPage:
    def test_by_slug(self, workspace):
        page = workspace.get_page("roadmap-aaaa1111")
        assert page.title == "Roadmap"
        assert page.file_path == f"{PROJECTS_DIR}/Roadmap {ROADMAP_ID}.md"

    def test_icon_attached(self, workspace):
        assert workspace.get_page("projects-1f2e3d4c").icon.value == "🚀"

    def test_by_identifier_not_in_tree(self, workspace):
        page = workspace.get_page(f"orphan-{LOOSE_ID[:8]}")
        assert page.title == "Orphan"

    def test_by_full_identifier(self, workspace):
        assert workspace.get_page(LOOSE_ID).title == "Orphan"

    def test_section_without_file_falls_back(self, workspace):
        assert workspace.get_page("reference-ffff1111") is None

    def test_unknown(self, workspace):
        assert workspace.get_page("nothing-00000000") is None

    def test_short_unknown_slug(self, workspace):
        assert workspace.get_page("nothing") is None


# ============================================================
# Tables
# ============================================================


class TestGetTable:
    def test_by_slug(self, workspace):
        table = workspace.get_table("tasks-bbbb1111")
        assert len(table.filtered.rows) == 2
        assert len(table.all.rows) == 3
        assert table.file_path == f"{PROJECTS_DIR}/Tasks {TASKS_ID}.csv"
        assert table.default_variant == "all"

    def test_colors(self, workspace):
        table = workspace.get_table("tasks-bbbb1111")
        assert table.colors["Done"] == ValueColor.GREEN

    def test_colors_disabled(self, settings_no_icons):
        table = Workspace(settings_no_icons).get_table("tasks-bbbb1111")
        assert table.colors == {}

    def test_by_identifier(self, workspace):
        table = workspace.get_table(TASKS_ID)
        assert table.file_path == f"{PROJECTS_DIR}/Tasks {TASKS_ID}.csv"

    def test_page_slug_is_not_a_table(self, workspace):
        assert workspace.get_table("roadmap-aaaa1111") is None

    def test_default_variant_from_settings(self, markdown_root):
        settings = Settings(markdown_root=markdown_root, default_table_variant="filtered")
        table = Workspace(settings).get_table("tasks-bbbb1111")
        assert table.default_variant == "filtered"


# ============================================================
# Images
# ============================================================


class TestGetImage:
    def test_markdown_image(self, workspace):
        content, mime_type = workspace.get_image(f"{PROJECTS_DIR}/cover.png")
        assert content == PNG_BYTES
        assert mime_type == "image/png"

    def test_percent_encoded_path(self, workspace):
        content, _ = workspace.get_image(f"Projects%20{PROJECTS_ID}/cover.png")
        assert content == PNG_BYTES

    def test_falls_back_to_html_export(self, workspace):
        path = f"{PROJECTS_DIR}/Roadmap {ROADMAP_ID}/icon.png"
        content, _ = workspace.get_image(path)
        assert content == PNG_BYTES

    def test_missing(self, workspace):
        assert workspace.get_image("missing.png") is None

    def test_unknown_extension(self, workspace, markdown_root):
        (markdown_root / "data.bin").write_bytes(b"\x00\x01")
        _, mime_type = workspace.get_image("data.bin")
        assert mime_type == "application/octet-stream"

    def test_traversal_rejected(self, workspace):
        with pytest.raises(PathViolationError):
            workspace.get_image("../../etc/passwd")

    def test_encoded_traversal_rejected(self, workspace):
        with pytest.raises(PathViolationError):
            workspace.get_image("..%2F..%2Fetc%2Fpasswd")

    def test_nul_byte_rejected(self, workspace):
        with pytest.raises(PathViolationError):
            workspace.get_image("cover%00.png")

    def test_leading_slash_stays_inside(self, workspace):
        assert workspace.get_image("/etc/passwd") is None

    def test_sibling_prefix_rejected(self, workspace, tmp_path):
        sibling = tmp_path / "markdown-secrets"
        sibling.mkdir()
        (sibling / "key.png").write_bytes(b"secret")
        with pytest.raises(PathViolationError):
            workspace.get_image("../markdown-secrets/key.png")


# ============================================================
# Search
# ============================================================


class TestSearch:
    def test_search(self, workspace):
        results = workspace.search("telescope")
        assert results[0].id == NOTES_ID

    def test_documents(self, workspace):
        assert len(workspace.search_documents()) == 5
