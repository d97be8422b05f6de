"""
Shape Capabilities - probing duck-typed shape proxies

Host shapes expose the same logical property under different names or
nesting depths. A capability is an ordered list of `FieldLens` objects;
the first lens whose getter returns a defined value is the one read and
written for that shape.
"""

import copy
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


# ============================================
# ============ FIELD ACCESS ==================
# ============================================

def read_field(container: Any, name: str) -> Any:
    """Read `name` from an object or mapping; MISSING when absent."""
    if container is None or container is MISSING:
        return MISSING
    if isinstance(container, Mapping):
        return container.get(name, MISSING)
    try:
        return getattr(container, name)
    except AttributeError:
        return MISSING


def write_field(container: Any, name: str, value: Any) -> None:
    # Setter exceptions from the host propagate to the caller
    if isinstance(container, MutableMapping):
        container[name] = value
    else:
        setattr(container, name, value)


def delete_field(container: Any, name: str) -> None:
    if isinstance(container, MutableMapping):
        container.pop(name, None)
        return
    try:
        delattr(container, name)
    except AttributeError:
        setattr(container, name, None)


def read_path(shape: Any, path: Sequence[str]) -> Any:
    value = shape
    for name in path:
        value = read_field(value, name)
        if value is MISSING:
            return MISSING
    return value


def write_path(shape: Any, path: Sequence[str], value: Any) -> None:
    container = shape
    for name in path[:-1]:
        nested = read_field(container, name)
        if nested is MISSING or nested is None:
            nested = {}
            write_field(container, name, nested)
        container = nested
    write_field(container, path[-1], value)


def delete_path(shape: Any, path: Sequence[str]) -> None:
    container = read_path(shape, path[:-1]) if len(path) > 1 else shape
    if container is MISSING or container is None:
        return
    delete_field(container, path[-1])


# ============================================
# ============ LENSES ========================
# ============================================

@dataclass(frozen=True)
class FieldLens:
    """Getter/setter pair over one concrete field path of a shape."""

    path: Tuple[str, ...]

    @property
    def label(self) -> str:
        return ".".join(self.path)

    def get(self, shape: Any) -> Any:
        return read_path(shape, self.path)

    def is_defined(self, shape: Any) -> bool:
        value = self.get(shape)
        return value is not MISSING and value is not None

    def set(self, shape: Any, value: Any) -> None:
        write_path(shape, self.path, value)


def lens(dotted: str) -> FieldLens:
    return FieldLens(tuple(dotted.split(".")))


class Capability:
    """An ordered set of lenses representing one logical shape property."""

    def __init__(self, name: str, lenses: Sequence[FieldLens]) -> None:
        self.name = name
        self.lenses: Tuple[FieldLens, ...] = tuple(lenses)

    def match(self, shape: Any) -> Optional[FieldLens]:
        """First lens whose getter returns a defined value, or None."""
        for candidate in self.lenses:
            if candidate.is_defined(shape):
                return candidate
        return None

    def supported_by(self, shape: Any) -> bool:
        return self.match(shape) is not None

    def read(self, shape: Any, default: Any = None) -> Any:
        matched = self.match(shape)
        return matched.get(shape) if matched else default

    def flags(self, shape: Any) -> Dict[str, Any]:
        """Every defined representation of this capability on the shape."""
        return {l.label: l.get(shape) for l in self.lenses if l.is_defined(shape)}


PROPORTION_LOCK = Capability(
    "proportion_lock",
    [
        lens("keep_aspect_ratio"),
        lens("constrain_proportions"),
        lens("lock_proportions"),
        lens("proportion_lock"),
        lens("constraints.lock_ratio"),
        lens("constraints.proportion_lock"),
    ],
)
EDITOR_LOCK = Capability("editor_lock", [lens("locked"), lens("blocked")])
VISIBILITY = Capability("visibility", [lens("visible")])
BORDER_RADIUS = Capability("border_radius", [lens("border_radius")])
BLEND_MODE = Capability("blend_mode", [lens("blend_mode")])
OPACITY = Capability("opacity", [lens("opacity")])
FILLS = Capability("fills", [lens("fills")])
SHADOWS = Capability("shadows", [lens("shadows")])
STROKES = Capability("strokes", [lens("strokes")])
BLUR = Capability("blur", [lens("blur")])
CONSTRAINTS_HORIZONTAL = Capability("constraints_horizontal", [lens("constraints_horizontal")])
CONSTRAINTS_VERTICAL = Capability("constraints_vertical", [lens("constraints_vertical")])
LAYOUT_Z_INDEX = Capability("layout_z_index", [lens("layout_child.z_index")])


# ============================================
# ======= STRUCTURAL CAPABILITY CHECKS =======
# ============================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_locked(shape: Any) -> bool:
    """Host-level editor lock (`locked`, or `blocked` on older hosts)."""
    return any(bool(l.get(shape)) for l in EDITOR_LOCK.lenses)


def is_hidden(shape: Any) -> bool:
    return VISIBILITY.read(shape, default=True) is False


def is_proportion_locked(shape: Any) -> bool:
    return bool(PROPORTION_LOCK.read(shape, default=False))


def is_positionable(shape: Any) -> bool:
    return _is_number(read_field(shape, "x")) and _is_number(read_field(shape, "y"))


def has_bounds(shape: Any) -> bool:
    return _is_number(read_field(shape, "width")) and _is_number(read_field(shape, "height"))


def is_resizable(shape: Any) -> bool:
    return has_bounds(shape) and callable(read_field(shape, "resize"))


def is_rotatable(shape: Any) -> bool:
    return callable(read_field(shape, "rotate")) or _is_number(read_field(shape, "rotation"))


def is_clonable(shape: Any) -> bool:
    return callable(read_field(shape, "clone"))


def is_group(shape: Any) -> bool:
    kind = read_field(shape, "type")
    return isinstance(kind, str) and kind.lower() == "group"


# ============================================
# ============ SNAPSHOTS =====================
# ============================================

def snapshot_field(shape: Any, path: Sequence[str]) -> Dict[str, Any]:
    """Record the current state of one field so it can be restored exactly."""
    value = read_path(shape, path)
    existed = value is not MISSING
    return {"path": list(path), "existed": existed, "value": copy.deepcopy(value) if existed else None}


def restore_field(shape: Any, snapshot: Dict[str, Any]) -> None:
    path = snapshot["path"]
    if snapshot.get("existed"):
        write_path(shape, path, copy.deepcopy(snapshot.get("value")))
    else:
        delete_path(shape, path)
