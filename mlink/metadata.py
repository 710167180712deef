"""
Action metadata: the document a producer serves for "describe yourself".

ActionMetadata carries two optional, overlapping vocabularies:

    - ``actions``: the legacy flat list of buttons and free-text inputs.
    - ``links.actions``: linked actions with href templates and typed
      parameters.

A producer may populate either or both. Consumers handle all three
combinations. At least one of the two must be non-empty; that invariant
is enforced by the schema validator, not by these records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from mlink.params import ActionParameter

# Reserved button value for the legacy free-text input entry.
INPUT_ACTION_VALUE = "__input__"

ACTION_BUTTON_TYPES = ("button", "input")
LINKED_ACTION_TYPES = ("transaction", "post", "external-link")
METADATA_TYPES = ("action", "completed")


@dataclass(frozen=True)
class ActionButton:
    """Legacy button or free-text input entry."""

    label: str
    value: str
    type: str = "button"
    placeholder: str | None = None
    disabled: bool = False

    @property
    def is_input(self) -> bool:
        return self.type == "input"

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "label": self.label,
            "value": self.value,
            "type": self.type,
        }
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        if self.disabled:
            result["disabled"] = True
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionButton:
        return cls(
            label=data["label"],
            value=data["value"],
            type=data.get("type", "button"),
            placeholder=data.get("placeholder"),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass(frozen=True)
class LinkedAction:
    """One invokable operation with an href template and parameters."""

    href: str
    label: str
    type: str = "transaction"
    disabled: bool = False
    parameters: tuple[ActionParameter, ...] = ()

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "type": self.type,
            "href": self.href,
            "label": self.label,
        }
        if self.disabled:
            result["disabled"] = True
        if self.parameters:
            result["parameters"] = [p.to_dict() for p in self.parameters]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LinkedAction:
        return cls(
            href=data["href"],
            label=data["label"],
            type=data.get("type") or "transaction",
            disabled=bool(data.get("disabled", False)),
            parameters=tuple(
                ActionParameter.from_dict(p) for p in data.get("parameters") or ()
            ),
        )


@dataclass(frozen=True)
class ActionLinks:
    actions: tuple[LinkedAction, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {"actions": [a.to_dict() for a in self.actions]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionLinks:
        return cls(actions=tuple(LinkedAction.from_dict(a) for a in data.get("actions") or ()))


@dataclass(frozen=True)
class ActionError:
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message}


@dataclass(frozen=True)
class ActionMetadata:
    """Describes an offerable action.

    Attributes:
        title: Display title.
        icon: Absolute http(s) URL, base64 data URI or root-relative path.
        description: Display description.
        label: Optional primary button text.
        actions: Legacy buttons/inputs, or None when not offered.
        links: Linked actions, or None when not offered.
        disabled: Disables the whole action.
        type: "action", or "completed" for a terminal chained step.
        error: Optional error to display with the action.
    """

    title: str
    icon: str
    description: str
    label: str | None = None
    actions: tuple[ActionButton, ...] | None = None
    links: ActionLinks | None = None
    disabled: bool = False
    type: str = "action"
    error: ActionError | None = None

    @property
    def linked_actions(self) -> tuple[LinkedAction, ...]:
        if self.links is None:
            return ()
        return self.links.actions

    @property
    def legacy_actions(self) -> tuple[ActionButton, ...]:
        return self.actions or ()

    def has_actions(self) -> bool:
        return bool(self.legacy_actions) or bool(self.linked_actions)

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "type": self.type,
            "title": self.title,
            "icon": self.icon,
            "description": self.description,
        }
        if self.label is not None:
            result["label"] = self.label
        if self.actions is not None:
            result["actions"] = [a.to_dict() for a in self.actions]
        if self.links is not None:
            result["links"] = self.links.to_dict()
        if self.disabled:
            result["disabled"] = True
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionMetadata:
        actions = data.get("actions")
        links = data.get("links")
        error = data.get("error")
        return cls(
            title=data["title"],
            icon=data["icon"],
            description=data["description"],
            label=data.get("label"),
            actions=None if actions is None else tuple(ActionButton.from_dict(a) for a in actions),
            links=None if links is None else ActionLinks.from_dict(links),
            disabled=bool(data.get("disabled", False)),
            type=data.get("type") or "action",
            error=None if error is None else ActionError(message=error["message"]),
        )
