"""
Tool Support - the shared handler pipeline

Every editing handler is an `async def handler(session, payload)` wrapped by
`tool_handler`, which turns expected failures into a `ToolResponse` and
marks the call on the session's undo context so nested handler calls never
record twice. The helpers below cover the resolve, classify and per-shape
mutation steps the handlers have in common.
"""

import copy
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from host_context import shape_ref
from shape_capabilities import is_locked, snapshot_field, restore_field, write_path
from tool_errors import (
    INVALID_PARAMETER,
    ToolExecutionError,
    ToolResponse,
    api_error,
    format_validation_error,
    no_selection_error,
)
from undo_redo import FieldChanges, UndoEntry

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)
Handler = Callable[[Any, Optional[Dict[str, Any]]], Awaitable[ToolResponse]]


def tool_handler(action_name: str) -> Callable[[Handler], Handler]:
    """Wrap a handler with the uniform error envelope and nesting guard."""

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(session: Any, payload: Optional[Dict[str, Any]] = None) -> ToolResponse:
            with session.undo.nested():
                try:
                    logger.info(f"🛠️ {action_name}: keys={sorted((payload or {}).keys()) if isinstance(payload, dict) else type(payload).__name__}")
                    return await func(session, payload if payload is not None else {})
                except ToolExecutionError as e:
                    logger.warning(f"⚠️ {action_name} failed: {e}")
                    return e.to_response()
                except ValidationError as e:
                    reason = format_validation_error(e)
                    logger.warning(f"⚠️ {action_name} rejected input: {reason}")
                    return ToolResponse.failure(reason, payload={"error_code": INVALID_PARAMETER})
                except Exception as e:
                    logger.error(f"❌ Unexpected error in {action_name}: {str(e)}")
                    return api_error(action_name, [], error=str(e)).to_response()

        wrapper.action_name = action_name
        return wrapper

    return decorator


def parse_payload(model: Type[PayloadT], payload: Any) -> PayloadT:
    if isinstance(payload, model):
        return payload
    return model.model_validate(payload or {})


# ============================================
# ============ RESOLVE & CLASSIFY ============
# ============================================

def resolve_targets(session: Any, shape_ids: Optional[Sequence[str]] = None) -> List[Any]:
    """Resolve the selection or raise NO_SELECTION."""
    shapes = session.resolver.resolve(shape_ids)
    if not shapes:
        raise no_selection_error(shape_ids=list(shape_ids or []))
    return shapes


def partition(shapes: Sequence[Any], predicate: Callable[[Any], bool]) -> Tuple[List[Any], List[Any]]:
    matched, rest = [], []
    for shape in shapes:
        (matched if predicate(shape) else rest).append(shape)
    return matched, rest


def split_locked(shapes: Sequence[Any]) -> Tuple[List[Any], List[Any]]:
    """(eligible, locked) for handlers that skip editor-locked shapes."""
    locked, eligible = partition(shapes, is_locked)
    return eligible, locked


def refs(shapes: Sequence[Any]) -> List[Dict[str, Any]]:
    return [shape_ref(shape) for shape in shapes]


def shape_names(shapes: Sequence[Any]) -> str:
    return ", ".join(str(getattr(shape, "name", None) or getattr(shape, "id", "")) for shape in shapes)


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


# ============================================
# ============ PER-SHAPE MUTATION ============
# ============================================

def failure_record(shape: Any, error: Exception) -> Dict[str, Any]:
    record = shape_ref(shape)
    record["error"] = str(error)
    return record


def apply_to_each(
    action_name: str,
    shapes: Sequence[Any],
    mutate: Callable[[Any], Any],
) -> Tuple[List[Any], List[Dict[str, Any]]]:
    """Run `mutate` on each shape; setter failures are captured per shape.

    Raises API_ERROR only when every shape failed.
    """
    succeeded: List[Any] = []
    failed: List[Dict[str, Any]] = []
    for shape in shapes:
        try:
            mutate(shape)
            succeeded.append(shape)
        except Exception as e:
            logger.warning(f"❌ {action_name} failed on shape {getattr(shape, 'id', '?')}: {e}")
            failed.append(failure_record(shape, e))
    if failed and not succeeded:
        raise api_error(action_name, failed)
    return succeeded, failed


def write_fields(
    action_name: str,
    shapes: Sequence[Any],
    plan: Callable[[Any], List[Tuple[Sequence[str], Any]]],
    changes: FieldChanges,
) -> Tuple[List[Any], List[Any], List[Dict[str, Any]]]:
    """Write the `(path, value)` pairs `plan` returns for each shape.

    Each written field is snapshotted before and after into `changes`. A
    shape whose plan is empty is reported as skipped; a shape whose setter
    throws is rolled back to its snapshot and reported as failed.

    Returns (changed, skipped, failed).
    """
    changed: List[Any] = []
    skipped: List[Any] = []
    failed: List[Dict[str, Any]] = []

    for shape in shapes:
        writes = plan(shape)
        if not writes:
            skipped.append(shape)
            continue
        befores = [snapshot_field(shape, path) for path, _ in writes]
        try:
            for path, value in writes:
                write_path(shape, path, value)
        except Exception as e:
            logger.warning(f"❌ {action_name} failed on shape {getattr(shape, 'id', '?')}: {e}")
            failed.append(failure_record(shape, e))
            _rollback(shape, befores)
            continue
        shape_id = str(shape.id)
        for (path, _), before in zip(writes, befores):
            changes.add(shape_id, before, snapshot_field(shape, path))
        changed.append(shape)

    if failed and not changed:
        raise api_error(action_name, failed)
    return changed, skipped, failed


def _rollback(shape: Any, befores: List[Dict[str, Any]]) -> None:
    for snapshot in reversed(befores):
        try:
            restore_field(shape, snapshot)
        except Exception as e:
            logger.warning(f"⚠️ Rollback of {'.'.join(snapshot['path'])} failed on {getattr(shape, 'id', '?')}: {e}")


# ============================================
# ============ RECORD & RESPOND ==============
# ============================================

def committed(session: Any, entry: UndoEntry, message: str, payload: Dict[str, Any]) -> ToolResponse:
    """Record `entry` and return the success envelope carrying `undo_info`."""
    session.undo.record(entry)
    payload["undo_info"] = copy.deepcopy(entry.undo_info())
    logger.info(f"✅ {message}")
    return ToolResponse.ok(message, payload=payload)


def with_failures(payload: Dict[str, Any], failed: List[Dict[str, Any]]) -> Dict[str, Any]:
    if failed:
        payload["failed_shapes"] = failed
    return payload
