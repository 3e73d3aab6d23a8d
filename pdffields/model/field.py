"""Field model definitions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Union

from pdffields.config import DATE_FORMAT, SIGNED_MARK
from pdffields.model.geometry import Box, clamp_box

FieldValue = Union[str, bool, date, None]


class FieldKind(str, Enum):
    TEXT = "text"
    DATE = "date"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"

    @property
    def is_textual(self) -> bool:
        return self in (FieldKind.TEXT, FieldKind.DATE)


class FieldFormatError(ValueError):
    """Raised when a serialized field cannot be turned into a Field."""


@dataclass(slots=True, frozen=True)
class Field:
    id: str
    kind: FieldKind
    label: str
    page_number: int
    x: float
    y: float
    width: float
    height: float
    required: bool = False
    order_index: int = 0

    @property
    def box(self) -> Box:
        return Box(self.x, self.y, self.width, self.height, page=self.page_number, key=self.id)

    def with_box(self, box: Box) -> Field:
        return replace(self, x=box.x, y=box.y, width=box.width, height=box.height)

    def clamped(self) -> Field:
        return self.with_box(clamp_box(self.box))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "pageNumber": self.page_number,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "required": self.required,
            "orderIndex": self.order_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Field:
        try:
            field = cls(
                id=str(data["id"]),
                kind=FieldKind(data["kind"]),
                label=str(data.get("label") or ""),
                page_number=int(data["pageNumber"]),
                x=float(data.get("x") or 0.0),
                y=float(data.get("y") or 0.0),
                width=float(data.get("width") or 0.0),
                height=float(data.get("height") or 0.0),
                required=bool(data.get("required", False)),
                order_index=int(data.get("orderIndex") or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise FieldFormatError(f"Invalid field record: {data!r}") from exc
        if not field.id or field.page_number < 1:
            raise FieldFormatError(f"Invalid field record: {data!r}")
        return field.clamped()


def format_field_value(value: FieldValue, kind: FieldKind) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        if not value:
            return ""
        return SIGNED_MARK if kind is FieldKind.SIGNATURE else "Yes"
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    text = str(value)
    if kind is FieldKind.SIGNATURE and text.strip().lower() == "signed":
        return SIGNED_MARK
    return text


def is_filled(value: FieldValue) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, date):
        return True
    return str(value).strip() != ""
