"""Gesture handling for placing, dragging and resizing fields.

Pointer positions arrive already converted to page percent. ``reduce`` is a
pure function from (state, event) to the next state; ``EditorController``
keeps the current state and notifies listeners for the desktop shell.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable, Union
import uuid

from pdffields.config import (
    DEFAULT_FIELD_HEIGHT_PCT,
    DEFAULT_FIELD_WIDTH_PCT,
    MIN_HEIGHT_PCT,
    MIN_WIDTH_PCT,
)
from pdffields.model.field import Field, FieldKind
from pdffields.model.geometry import Box, clamp_box, intersects

logger = logging.getLogger(__name__)


# Gesture states


@dataclass(slots=True, frozen=True)
class Idle:
    pass


@dataclass(slots=True, frozen=True)
class Placing:
    kind: FieldKind


@dataclass(slots=True, frozen=True)
class PendingPlacement:
    field: Field
    overlapping_ids: frozenset[str]


@dataclass(slots=True, frozen=True)
class Dragging:
    field_id: str
    offset_x: float
    offset_y: float


@dataclass(slots=True, frozen=True)
class Resizing:
    field_id: str
    start_x: float
    start_y: float
    start_width: float
    start_height: float


Gesture = Union[Idle, Placing, PendingPlacement, Dragging, Resizing]


# Events


@dataclass(slots=True, frozen=True)
class ArmPlacement:
    kind: FieldKind


@dataclass(slots=True, frozen=True)
class DisarmPlacement:
    pass


@dataclass(slots=True, frozen=True)
class PageClick:
    page_number: int
    x: float
    y: float


@dataclass(slots=True, frozen=True)
class ConfirmPlacement:
    pass


@dataclass(slots=True, frozen=True)
class CancelPlacement:
    pass


@dataclass(slots=True, frozen=True)
class PointerDown:
    field_id: str
    x: float
    y: float
    on_resize_handle: bool = False


@dataclass(slots=True, frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(slots=True, frozen=True)
class PointerUp:
    pass


@dataclass(slots=True, frozen=True)
class SelectField:
    field_id: str | None


@dataclass(slots=True, frozen=True)
class DeleteField:
    field_id: str


@dataclass(slots=True, frozen=True)
class RenameField:
    field_id: str
    label: str


@dataclass(slots=True, frozen=True)
class SetRequired:
    field_id: str
    required: bool


@dataclass(slots=True, frozen=True)
class DuplicateField:
    field_id: str


EditorEvent = Union[
    ArmPlacement,
    DisarmPlacement,
    PageClick,
    ConfirmPlacement,
    CancelPlacement,
    PointerDown,
    PointerMove,
    PointerUp,
    SelectField,
    DeleteField,
    RenameField,
    SetRequired,
    DuplicateField,
]


@dataclass(slots=True, frozen=True)
class EditorState:
    fields: tuple[Field, ...] = ()
    gesture: Gesture = field(default_factory=Idle)
    selected_id: str | None = None

    def find(self, field_id: str | None) -> Field | None:
        for item in self.fields:
            if item.id == field_id:
                return item
        return None

    def page_fields(self, page_number: int) -> list[Field]:
        return [item for item in self.fields if item.page_number == page_number]


def new_field_id() -> str:
    return f"field-{uuid.uuid4()}"


def default_label(kind: FieldKind) -> str:
    return f"{kind.value.capitalize()} Field"


def _replace_field(state: EditorState, updated: Field) -> EditorState:
    fields = tuple(updated if item.id == updated.id else item for item in state.fields)
    return replace(state, fields=fields)


def _overlapping_ids(state: EditorState, candidate: Field) -> frozenset[str]:
    return frozenset(
        item.id
        for item in state.fields
        if intersects(candidate.box, item.box)
    )


def _commit(state: EditorState, new_field: Field) -> EditorState:
    return EditorState(
        fields=state.fields + (new_field,),
        gesture=Idle(),
        selected_id=new_field.id,
    )


def _place(state: EditorState, kind: FieldKind, event: PageClick) -> EditorState:
    box = clamp_box(Box(event.x, event.y, DEFAULT_FIELD_WIDTH_PCT, DEFAULT_FIELD_HEIGHT_PCT))
    candidate = Field(
        id=new_field_id(),
        kind=kind,
        label=default_label(kind),
        page_number=event.page_number,
        x=box.x,
        y=box.y,
        width=box.width,
        height=box.height,
        order_index=len(state.fields),
    )
    overlapping = _overlapping_ids(state, candidate)
    if overlapping:
        logger.debug("Placement of %s overlaps %d field(s)", candidate.id, len(overlapping))
        return replace(state, gesture=PendingPlacement(candidate, overlapping))
    return _commit(state, candidate)


def _drag(state: EditorState, gesture: Dragging, event: PointerMove) -> EditorState:
    current = state.find(gesture.field_id)
    if current is None:
        return replace(state, gesture=Idle())
    moved = Box(
        event.x - gesture.offset_x,
        event.y - gesture.offset_y,
        current.width,
        current.height,
    )
    return _replace_field(state, current.with_box(clamp_box(moved)))


def _resize(state: EditorState, gesture: Resizing, event: PointerMove) -> EditorState:
    current = state.find(gesture.field_id)
    if current is None:
        return replace(state, gesture=Idle())
    width = gesture.start_width + (event.x - gesture.start_x)
    height = gesture.start_height + (event.y - gesture.start_y)
    width = max(MIN_WIDTH_PCT, min(100.0 - current.x, width))
    height = max(MIN_HEIGHT_PCT, min(100.0 - current.y, height))
    resized = Box(current.x, current.y, width, height)
    return _replace_field(state, current.with_box(clamp_box(resized)))


def _delete(state: EditorState, field_id: str) -> EditorState:
    fields = tuple(item for item in state.fields if item.id != field_id)
    gesture = state.gesture
    if isinstance(gesture, (Dragging, Resizing)) and gesture.field_id == field_id:
        gesture = Idle()
    selected_id = None if state.selected_id == field_id else state.selected_id
    return EditorState(fields=fields, gesture=gesture, selected_id=selected_id)


def _duplicate(state: EditorState, field_id: str) -> EditorState:
    source = state.find(field_id)
    if source is None:
        return state
    offset = 2.0
    box = clamp_box(Box(source.x + offset, source.y + offset, source.width, source.height))
    duplicate = replace(
        source,
        id=new_field_id(),
        label=f"{source.label} (copy)",
        order_index=len(state.fields),
    ).with_box(box)
    overlapping = _overlapping_ids(state, duplicate)
    if overlapping:
        return replace(state, gesture=PendingPlacement(duplicate, overlapping))
    return replace(state, fields=state.fields + (duplicate,), selected_id=duplicate.id)


def reduce(state: EditorState, event: EditorEvent) -> EditorState:
    gesture = state.gesture

    if isinstance(event, ArmPlacement):
        if isinstance(gesture, (Dragging, Resizing, PendingPlacement)):
            return state
        return replace(state, gesture=Placing(event.kind))

    if isinstance(event, DisarmPlacement):
        if isinstance(gesture, Placing):
            return replace(state, gesture=Idle())
        return state

    if isinstance(event, PageClick):
        if isinstance(gesture, Placing):
            return _place(state, gesture.kind, event)
        return state

    if isinstance(event, ConfirmPlacement):
        if isinstance(gesture, PendingPlacement):
            return _commit(state, gesture.field)
        return state

    if isinstance(event, CancelPlacement):
        if isinstance(gesture, PendingPlacement):
            return replace(state, gesture=Idle())
        return state

    if isinstance(event, PointerDown):
        if not isinstance(gesture, Idle):
            return state
        target = state.find(event.field_id)
        if target is None:
            return state
        if event.on_resize_handle:
            next_gesture: Gesture = Resizing(
                target.id, event.x, event.y, target.width, target.height
            )
        else:
            next_gesture = Dragging(target.id, event.x - target.x, event.y - target.y)
        return replace(state, gesture=next_gesture, selected_id=target.id)

    if isinstance(event, PointerMove):
        if isinstance(gesture, Dragging):
            return _drag(state, gesture, event)
        if isinstance(gesture, Resizing):
            return _resize(state, gesture, event)
        return state

    if isinstance(event, PointerUp):
        if isinstance(gesture, (Dragging, Resizing)):
            return replace(state, gesture=Idle())
        return state

    if isinstance(event, SelectField):
        if event.field_id is not None and state.find(event.field_id) is None:
            return state
        return replace(state, selected_id=event.field_id)

    if isinstance(event, DeleteField):
        return _delete(state, event.field_id)

    if isinstance(event, RenameField):
        target = state.find(event.field_id)
        if target is None:
            return state
        return _replace_field(state, replace(target, label=event.label))

    if isinstance(event, SetRequired):
        target = state.find(event.field_id)
        if target is None:
            return state
        return _replace_field(state, replace(target, required=event.required))

    if isinstance(event, DuplicateField):
        if isinstance(gesture, (Dragging, Resizing, PendingPlacement)):
            return state
        return _duplicate(state, event.field_id)

    raise TypeError(f"Unknown editor event: {event!r}")


class EditorController:
    def __init__(self, fields: list[Field] | None = None) -> None:
        self._state = EditorState(fields=tuple(item.clamped() for item in fields or ()))
        self._listeners: list[Callable[[EditorState], None]] = []

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def fields(self) -> list[Field]:
        return list(self._state.fields)

    @property
    def selected(self) -> Field | None:
        return self._state.find(self._state.selected_id)

    @property
    def pending_placement(self) -> PendingPlacement | None:
        gesture = self._state.gesture
        return gesture if isinstance(gesture, PendingPlacement) else None

    def subscribe(self, listener: Callable[[EditorState], None]) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: EditorEvent) -> EditorState:
        previous = self._state
        self._state = reduce(previous, event)
        if self._state is not previous:
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    def load(self, fields: list[Field]) -> None:
        self._state = EditorState(fields=tuple(item.clamped() for item in fields))
        for listener in list(self._listeners):
            listener(self._state)
