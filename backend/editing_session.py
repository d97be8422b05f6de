"""Per-session mutable state threaded through every handler call."""

from dataclasses import dataclass, field
from typing import Any, Optional

from clone_placement import ClonePlacementEngine
from config import EditorConfig, get_config
from selection_resolver import SelectionCache, SelectionResolver
from undo_redo import UndoRedoContext


@dataclass
class EditingSession:
    """The host plus the undo stacks and selection cache that belong to it."""

    host: Any
    config: EditorConfig = field(default_factory=EditorConfig)
    undo: Optional[UndoRedoContext] = None
    selection_cache: SelectionCache = field(default_factory=SelectionCache)

    def __post_init__(self) -> None:
        if self.undo is None:
            self.undo = UndoRedoContext(max_depth=self.config.undo_max_depth)

    @classmethod
    def from_env(cls, host: Any) -> "EditingSession":
        return cls(host=host, config=get_config())

    @property
    def resolver(self) -> SelectionResolver:
        return SelectionResolver(self.host, self.selection_cache)

    def placement_engine(self) -> ClonePlacementEngine:
        return ClonePlacementEngine.for_host(
            self.host,
            min_offset=self.config.clone_min_offset,
            offset_ratio=self.config.clone_offset_ratio,
        )

    def reset(self) -> None:
        self.undo.reset()
        self.selection_cache.reset()
