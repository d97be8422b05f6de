"""
Pytest configuration and shared fixtures for editing core tests.

The fake host mirrors the object graph the core is driven by: a live
selection, a current page that resolves shapes by id, and shapes that
expose plain attributes plus optional `resize`/`rotate`/`clone`/`remove`
methods.
"""

import copy
import itertools
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add backend directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from config import EditorConfig
from editing_session import EditingSession

# Register every inverter the handlers rely on
import arrange_tools  # noqa: F401
import clone_tool  # noqa: F401
import group_tools  # noqa: F401
import layer_tools  # noqa: F401
import page_tools  # noqa: F401
import style_tools  # noqa: F401
import toggle_tools  # noqa: F401
import transform_tools  # noqa: F401

_clone_ids = itertools.count(1)
_group_ids = itertools.count(1)


# ============== Fake Host ==============

class FakeShape:
    """A shape proxy with plain attributes and the optional host methods."""

    def __init__(self, page: Optional["FakePage"] = None, **fields: Any):
        self._page = page
        self.__dict__.update(fields)

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def rotate(self, angle: float, center: Optional[Dict[str, float]] = None) -> None:
        self.rotation = (getattr(self, "rotation", 0) or 0) + angle
        self.last_rotation_center = center

    def clone(self) -> "FakeShape":
        fields = {
            key: copy.deepcopy(value)
            for key, value in vars(self).items()
            if not key.startswith("_") and key != "parent"
        }
        fields["id"] = f"{self.id}-copy-{next(_clone_ids)}"
        duplicate = FakeShape(self._page, **fields)
        if self._page is not None:
            self._page.add(duplicate)
        return duplicate

    def remove(self) -> None:
        if self._page is not None:
            self._page.discard(self)


class ReadOnlyOpacityShape(FakeShape):
    """Rejects opacity writes the way a host rejects writes on a protected shape."""

    @property
    def opacity(self) -> float:
        return 1.0

    @opacity.setter
    def opacity(self, value: float) -> None:
        raise RuntimeError("opacity is read-only on this shape")


class FakeContainer:
    """Parent container with an ordered child list."""

    def __init__(self, container_id: str = "frame-1", **fields: Any):
        self.id = container_id
        self.children: List[Any] = []
        self.__dict__.update(fields)

    def adopt(self, *shapes: Any) -> None:
        for shape in shapes:
            shape.parent = self
            self.children.append(shape)

    def append_child(self, shape: Any) -> None:
        self.children.remove(shape)
        self.children.append(shape)

    def insert_child(self, index: int, shape: Any) -> None:
        self.children.remove(shape)
        self.children.insert(index, shape)


class FakePage:
    def __init__(self, page_id: str = "page-1", name: str = "Page 1", width: Any = None, height: Any = None):
        self.id = page_id
        self.name = name
        self.width = width
        self.height = height
        self.root = FakeShape(id=f"{page_id}-root", fills=[])
        self.shapes: Dict[str, Any] = {}
        self.selected: List[Any] = []

    def add(self, shape: Any) -> Any:
        self.shapes[str(shape.id)] = shape
        return shape

    def discard(self, shape: Any) -> None:
        self.shapes.pop(str(shape.id), None)

    def get_shape_by_id(self, shape_id: str) -> Any:
        return self.shapes.get(shape_id)

    def find_shapes(self) -> List[Any]:
        return list(self.shapes.values())

    def get_selected_shapes(self) -> List[Any]:
        return list(self.selected)


class FakeHost:
    def __init__(self, page: FakePage):
        self.selection: List[Any] = []
        self.current_page = page
        self.pages = [page]
        self.opened: List[Any] = []

    def create_page(self) -> FakePage:
        page = FakePage(page_id=f"page-{len(self.pages) + 1}", name=f"Page {len(self.pages) + 1}")
        self.pages.append(page)
        return page

    def open_page(self, page: FakePage) -> None:
        self.opened.append(page)
        self.current_page = page

    def group(self, shapes: List[Any]) -> FakeShape:
        page = self.current_page
        group = FakeShape(page, id=f"group-{next(_group_ids)}", name="Group", type="group", children=list(shapes))
        for shape in shapes:
            shape.parent = group
        page.add(group)
        return group

    def ungroup(self, group: FakeShape) -> None:
        for child in group.children:
            child.parent = None
        group.children = []
        self.current_page.discard(group)


# ============== Host Fixtures ==============

@pytest.fixture
def page() -> FakePage:
    """A 200x200 page."""
    return FakePage(width=200, height=200)


@pytest.fixture
def host(page: FakePage) -> FakeHost:
    return FakeHost(page)


@pytest.fixture
def make_shape(page: FakePage, host: FakeHost):
    """Factory adding a FakeShape to the page; `selected=True` adds it to the live selection."""

    def factory(shape_id: str, selected: bool = True, cls=FakeShape, **fields: Any) -> Any:
        fields.setdefault("name", shape_id.capitalize())
        shape = cls(page, id=shape_id, **fields)
        page.add(shape)
        if selected:
            host.selection.append(shape)
        return shape

    return factory


@pytest.fixture
def rect_shape(make_shape):
    """A selected, unlocked 30x30 rectangle at (10, 10)."""
    return make_shape("rect", x=10, y=10, width=30, height=30, rotation=0, opacity=1.0, locked=False)


@pytest.fixture
def container() -> FakeContainer:
    return FakeContainer()


# ============== Session Fixtures ==============

@pytest.fixture
def session(host: FakeHost) -> EditingSession:
    return EditingSession(host=host, config=EditorConfig())


@pytest.fixture
def limited_session(host: FakeHost) -> EditingSession:
    """A session whose undo history keeps at most two entries."""
    return EditingSession(host=host, config=EditorConfig(undo_limit=2))
