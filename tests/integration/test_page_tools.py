"""
Integration tests for page background, rename, create and open handlers.
"""

from history_tools import redo_last_action, undo_last_action
from page_tools import change_page_background_tool, create_page_tool, open_page_tool, rename_page_tool


class TestPageBackground:
    async def test_change_and_undo(self, session, page):
        page.root.fills = [{"fill_color": "#FFFFFF", "fill_opacity": 1}]

        response = await change_page_background_tool(session, {"backgroundColor": "#1E1E1E"})

        assert response.success
        assert page.root.fills == [{"fill_color": "#1E1E1E", "fill_opacity": 1}]
        assert response.payload["undo_info"]["undo_data"]["previous_fills"] == [{"fill_color": "#FFFFFF", "fill_opacity": 1}]

        await undo_last_action(session)
        assert page.root.fills == [{"fill_color": "#FFFFFF", "fill_opacity": 1}]
        await redo_last_action(session)
        assert page.root.fills == [{"fill_color": "#1E1E1E", "fill_opacity": 1}]

    async def test_named_color(self, session, page):
        await change_page_background_tool(session, {"background_color": "black"})
        assert page.root.fills[0]["fill_color"] == "#000000"

    async def test_color_required(self, session):
        response = await change_page_background_tool(session, {})
        assert not response.success
        assert response.message == "Background color is required"

    async def test_missing_root(self, session, page):
        page.root = None
        response = await change_page_background_tool(session, {"background_color": "#000000"})
        assert not response.success
        assert response.message == "Page root shape not found"

    async def test_unknown_page(self, session):
        response = await change_page_background_tool(session, {"background_color": "#000000", "page_id": "nope"})
        assert response.message == "Page nope not found"
        assert response.payload["error_code"] == "MISSING_PAGE"

    async def test_other_page_by_id(self, session, host, page):
        other = host.create_page()
        await change_page_background_tool(session, {"background_color": "#00FF00", "pageId": other.id})
        assert other.root.fills[0]["fill_color"] == "#00FF00"
        assert page.root.fills == []


class TestRenamePage:
    async def test_rename_and_undo(self, session, page):
        response = await rename_page_tool(session, {"newName": "Cover"})

        assert response.success
        assert page.name == "Cover"
        assert response.message == "Renamed page 'Page 1' to 'Cover'"

        await undo_last_action(session)
        assert page.name == "Page 1"

    async def test_name_required(self, session):
        response = await rename_page_tool(session, {"new_name": "   "})
        assert response.message == "New page name is required"


class TestCreatePage:
    async def test_create_named_and_opened(self, session, host):
        response = await create_page_tool(session, {"name": "Drafts", "open_after_create": True})

        assert response.success
        assert response.payload["name"] == "Drafts"
        assert response.payload["opened"] is True
        assert host.current_page.name == "Drafts"
        assert host.opened == [host.pages[-1]]

    async def test_create_without_opening(self, session, host, page):
        response = await create_page_tool(session)
        assert response.success
        assert len(host.pages) == 2
        assert host.current_page is page

    async def test_undo_is_a_warning_noop(self, session, host, caplog):
        await create_page_tool(session, {"name": "Drafts"})
        caplog.set_level("WARNING")

        response = await undo_last_action(session)

        assert response.success
        assert response.payload["not_undoable"] is True
        assert len(host.pages) == 2
        assert "Cannot undo page creation" in caplog.text


class TestOpenPage:
    async def test_open_by_id_undo_redo(self, session, host, page):
        other = host.create_page()

        response = await open_page_tool(session, {"pageId": other.id})

        assert response.success
        assert response.message == 'Opened page "Page 2"'
        assert response.payload["page_id"] == "page-2"
        assert response.payload["undo_info"]["undo_data"] == {
            "previous_page_id": "page-1",
            "previous_page_name": "Page 1",
            "target_page_id": "page-2",
            "target_page_name": "Page 2",
        }
        assert host.current_page is other

        await undo_last_action(session)
        assert host.current_page is page
        await redo_last_action(session)
        assert host.current_page is other
        assert host.opened == [other, page, other]

    async def test_open_by_name(self, session, host):
        other = host.create_page()
        response = await open_page_tool(session, {"page_name": "  page 2 "})
        assert response.success
        assert host.current_page is other

    async def test_unknown_page(self, session, host):
        response = await open_page_tool(session, {"page_id": "nope"})
        assert not response.success
        assert response.message == "Page nope not found"
        assert response.payload["error_code"] == "MISSING_PAGE"
        assert host.opened == []
        assert session.undo.undo_depth == 0

    async def test_unknown_name(self, session):
        response = await open_page_tool(session, {"page_name": "Archive"})
        assert response.message == "Page 'Archive' not found"

    async def test_page_required(self, session):
        response = await open_page_tool(session, {})
        assert not response.success
        assert response.message == "Either page_id or page_name must be provided"
