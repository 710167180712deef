"""
Typed action parameters.

A parameter is a named input collected from the user before an action's
href is resolved. Parameters form a tagged variant keyed by ``type``:

    - plain: text, number, email, url, date, datetime-local, textarea,
      address, token, amount
    - selectable: select, radio, checkbox (these also carry ``options``)

Both variants share one record. ``is_selectable_param`` is the
discriminant; code that renders or validates parameters branches on it
rather than on the presence of ``options``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

PLAIN_PARAMETER_TYPES = (
    "text",
    "number",
    "email",
    "url",
    "date",
    "datetime-local",
    "textarea",
    "address",
    "token",
    "amount",
)

SELECTABLE_PARAMETER_TYPES = ("select", "radio", "checkbox")

PARAMETER_TYPES = PLAIN_PARAMETER_TYPES + SELECTABLE_PARAMETER_TYPES

# Types whose values are range-checked against min/max.
NUMERIC_PARAMETER_TYPES = ("number", "amount")

DEFAULT_PARAMETER_TYPE = "text"


@dataclass(frozen=True)
class ParameterOption:
    """One choice of a select/radio/checkbox parameter."""

    label: str
    value: str
    selected: bool = False

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"label": self.label, "value": self.value}
        if self.selected:
            result["selected"] = True
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ParameterOption:
        return cls(
            label=data["label"],
            value=data["value"],
            selected=bool(data.get("selected", False)),
        )


@dataclass(frozen=True)
class ActionParameter:
    """A typed parameter of a linked action.

    Attributes:
        name: Placeholder key in the href template.
        type: Declared type; selects the validation and rendering path.
        label: Display label. Error messages fall back to ``name``.
        required: Whether an empty value is rejected.
        pattern: Regular expression the value must match.
        pattern_description: Human-readable form of ``pattern``.
        min: Lower bound (number or date) as string or number.
        max: Upper bound (number or date) as string or number.
        options: Choices; non-empty for selectable types, empty otherwise.
    """

    name: str
    type: str = DEFAULT_PARAMETER_TYPE
    label: str | None = None
    required: bool = False
    pattern: str | None = None
    pattern_description: str | None = None
    min: str | float | None = None
    max: str | float | None = None
    options: tuple[ParameterOption, ...] = ()

    @property
    def display_name(self) -> str:
        return self.label or self.name

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"name": self.name, "type": self.type}
        if self.label is not None:
            result["label"] = self.label
        if self.required:
            result["required"] = True
        if self.pattern is not None:
            result["pattern"] = self.pattern
        if self.pattern_description is not None:
            result["patternDescription"] = self.pattern_description
        if self.min is not None:
            result["min"] = self.min
        if self.max is not None:
            result["max"] = self.max
        if is_selectable_param(self):
            result["options"] = [o.to_dict() for o in self.options]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionParameter:
        return cls(
            name=data["name"],
            type=data.get("type") or DEFAULT_PARAMETER_TYPE,
            label=data.get("label"),
            required=bool(data.get("required", False)),
            pattern=data.get("pattern"),
            pattern_description=data.get("patternDescription"),
            min=data.get("min"),
            max=data.get("max"),
            options=tuple(ParameterOption.from_dict(o) for o in data.get("options") or ()),
        )


ParameterLike = Union[ActionParameter, Mapping[str, Any]]


def is_selectable_param(param: ParameterLike) -> bool:
    """True iff the parameter's declared type is select, radio or checkbox."""
    if isinstance(param, ActionParameter):
        param_type = param.type
    else:
        param_type = param.get("type") or DEFAULT_PARAMETER_TYPE
    return param_type in SELECTABLE_PARAMETER_TYPES
