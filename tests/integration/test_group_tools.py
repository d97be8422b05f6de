"""
Integration tests for group and ungroup handlers.
"""

from group_tools import group_selection_tool, ungroup_selection_tool
from history_tools import redo_last_action, undo_last_action


def groups_on(page) -> list:
    return [shape for shape in page.shapes.values() if getattr(shape, "type", None) == "group"]


class TestGroupSelection:
    """Tests for group_selection_tool."""

    async def test_group_undo_redo(self, session, page, make_shape):
        a = make_shape("a", x=0, y=0, width=10, height=10)
        b = make_shape("b", x=20, y=0, width=10, height=10)

        response = await group_selection_tool(session)

        assert response.success
        group_id = response.payload["group_id"]
        assert response.payload["grouped_shapes"] == [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}]
        assert response.message == "Grouped 2 shapes into 'Group': A, B"
        assert a.parent is page.get_shape_by_id(group_id)

        undo = await undo_last_action(session)
        assert undo.success
        assert groups_on(page) == []
        assert a.parent is None and b.parent is None
        assert (a.x, b.x) == (0, 20)

        redo = await redo_last_action(session)
        assert redo.success
        [regrouped] = groups_on(page)
        assert regrouped.id != group_id
        assert regrouped.children == [a, b]

        # The entry follows the new group, so a second undo still works
        await undo_last_action(session)
        assert groups_on(page) == []

    async def test_needs_two_shapes(self, session, rect_shape):
        response = await group_selection_tool(session)
        assert not response.success
        assert response.message == "NEED_MORE_SHAPES"
        assert response.payload["required"] == 2
        assert session.undo.undo_depth == 0


class TestUngroupSelection:
    """Tests for ungroup_selection_tool."""

    async def test_ungroup_undo_redo(self, session, host, page, make_shape):
        a = make_shape("a", selected=False, x=0, y=0)
        b = make_shape("b", selected=False, x=20, y=0)
        group = host.group([a, b])
        host.selection.append(group)

        response = await ungroup_selection_tool(session)

        assert response.success
        assert response.payload["ungrouped_groups"] == [{"id": group.id, "name": "Group"}]
        assert response.payload["released_shape_ids"] == ["a", "b"]
        assert groups_on(page) == []

        await undo_last_action(session)
        [regrouped] = groups_on(page)
        assert regrouped.children == [a, b]
        assert a.parent is regrouped

        await redo_last_action(session)
        assert groups_on(page) == []
        assert a.parent is None

    async def test_non_group_shapes_ignored(self, session, host, make_shape):
        a = make_shape("a", selected=False)
        b = make_shape("b", selected=False)
        group = host.group([a, b])
        host.selection.append(group)
        make_shape("loose")

        response = await ungroup_selection_tool(session)

        assert response.success
        assert [g["id"] for g in response.payload["ungrouped_groups"]] == [group.id]

    async def test_no_groups_selected(self, session, rect_shape):
        response = await ungroup_selection_tool(session)
        assert not response.success
        assert response.message == "NO_GROUPS_SELECTED"
        assert response.payload["selection_count"] == 1
