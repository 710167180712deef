"""
Builders for action definitions.

Small factory functions assemble correct-by-construction protocol values,
and ``create_action`` turns a full definition into a runnable Action.

Everything is checked eagerly: a malformed definition raises
DefinitionError at construction time, never on first request.

Example:
    >>> action = create_action(ActionDefinition(
    ...     title="Swap",
    ...     icon="https://example.com/icon.png",
    ...     description="Swap tokens",
    ...     links=[linked_action(
    ...         "/api/swap?amount={amount}",
    ...         "Swap",
    ...         parameters=[parameter("amount", type="amount", required=True)],
    ...     )],
    ...     handler=my_handler,
    ... ))
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence, Union

from mlink.errors import DefinitionError
from mlink.metadata import (
    INPUT_ACTION_VALUE,
    ActionButton,
    ActionLinks,
    ActionMetadata,
    LinkedAction,
)
from mlink.params import (
    DEFAULT_PARAMETER_TYPE,
    SELECTABLE_PARAMETER_TYPES,
    ActionParameter,
    ParameterOption,
)
from mlink.schema import validate_action_metadata
from mlink.transaction import (
    NEXT_ACTION_INLINE,
    NEXT_ACTION_POST,
    ActionContext,
    EVMTransaction,
    NextActionLink,
    TransactionResponse,
)

if TYPE_CHECKING:
    from mlink.action import Action

ActionHandler = Callable[
    [ActionContext],
    Union[TransactionResponse, dict, Awaitable[Union[TransactionResponse, dict]]],
]


# =========================================================================
# Legacy vocabulary
# =========================================================================


def button(label: str, value: str, *, disabled: bool = False) -> ActionButton:
    return ActionButton(label=label, value=value, type="button", disabled=disabled)


def input_action(
    label: str,
    *,
    placeholder: str | None = None,
    disabled: bool = False,
) -> ActionButton:
    """A free-text input entry. Its value is always ``__input__``."""
    return ActionButton(
        label=label,
        value=INPUT_ACTION_VALUE,
        type="input",
        placeholder=placeholder,
        disabled=disabled,
    )


# =========================================================================
# Linked vocabulary
# =========================================================================


def option(label: str, value: str, *, selected: bool = False) -> ParameterOption:
    return ParameterOption(label=label, value=value, selected=selected)


def parameter(
    name: str,
    *,
    type: str = DEFAULT_PARAMETER_TYPE,
    label: str | None = None,
    required: bool = False,
    pattern: str | None = None,
    pattern_description: str | None = None,
    min: str | float | None = None,
    max: str | float | None = None,
) -> ActionParameter:
    """A plain (non-selectable) parameter."""
    if not name:
        raise DefinitionError("Parameter name is required")
    if type in SELECTABLE_PARAMETER_TYPES:
        raise DefinitionError(
            f"Parameter {name!r} has selectable type {type!r}; use select_parameter()"
        )
    return ActionParameter(
        name=name,
        type=type,
        label=label,
        required=required,
        pattern=pattern,
        pattern_description=pattern_description,
        min=min,
        max=max,
    )


def select_parameter(
    name: str,
    options: Sequence[ParameterOption],
    *,
    type: str = "select",
    label: str | None = None,
    required: bool = False,
) -> ActionParameter:
    """A select/radio/checkbox parameter. ``options`` must be non-empty."""
    if not name:
        raise DefinitionError("Parameter name is required")
    if type not in SELECTABLE_PARAMETER_TYPES:
        raise DefinitionError(
            f"Parameter {name!r}: type must be one of {', '.join(SELECTABLE_PARAMETER_TYPES)}"
        )
    if not options:
        raise DefinitionError(f"Parameter {name!r} requires at least one option")
    return ActionParameter(
        name=name,
        type=type,
        label=label,
        required=required,
        options=tuple(options),
    )


def linked_action(
    href: str,
    label: str,
    *,
    parameters: Sequence[ActionParameter] = (),
    type: str = "transaction",
    disabled: bool = False,
) -> LinkedAction:
    """A linked action. Parameter names must be unique within it."""
    if not href:
        raise DefinitionError("Linked action href is required")
    if not label:
        raise DefinitionError("Linked action label is required")
    duplicates = sorted(n for n, count in Counter(p.name for p in parameters).items() if count > 1)
    if duplicates:
        raise DefinitionError(
            f"Linked action {label!r} has duplicate parameter names: {', '.join(duplicates)}",
            details={"duplicates": duplicates},
        )
    return LinkedAction(
        href=href,
        label=label,
        type=type,
        disabled=disabled,
        parameters=tuple(parameters),
    )


# =========================================================================
# Responses
# =========================================================================


def transaction(to: str, value: str | int, data: str, chain_id: int) -> EVMTransaction:
    return EVMTransaction(to=to, value=str(value), data=data, chain_id=chain_id)


def next_post(href: str) -> NextActionLink:
    """Chain to a follow-up action fetched by POST to ``href``."""
    return NextActionLink(type=NEXT_ACTION_POST, href=href)


def next_inline(metadata: ActionMetadata) -> NextActionLink:
    """Chain to a follow-up action embedded in the response."""
    return NextActionLink(type=NEXT_ACTION_INLINE, action=metadata)


# =========================================================================
# Definitions
# =========================================================================


@dataclass(frozen=True)
class ActionDefinition:
    """Everything needed to serve one action.

    Attributes:
        title: Display title.
        icon: Icon URL, base64 image or root-relative path.
        description: Display description.
        handler: Business logic; receives an ActionContext and returns a
            TransactionResponse (or its wire dict), sync or async.
        actions: Legacy buttons/inputs.
        links: Linked actions.
        label: Optional primary button text.
        disabled: Disables the whole action.
    """

    title: str
    icon: str
    description: str
    handler: ActionHandler
    actions: Sequence[ActionButton] = field(default_factory=tuple)
    links: Sequence[LinkedAction] = field(default_factory=tuple)
    label: str | None = None
    disabled: bool = False

    def to_metadata(self) -> ActionMetadata:
        return ActionMetadata(
            title=self.title,
            icon=self.icon,
            description=self.description,
            label=self.label,
            actions=tuple(self.actions) if self.actions else None,
            links=ActionLinks(actions=tuple(self.links)) if self.links else None,
            disabled=self.disabled,
        )


def validate_definition(definition: ActionDefinition) -> ActionMetadata:
    """Check a definition and return the metadata it describes.

    Raises:
        DefinitionError: On any missing or malformed part.
    """
    if not definition.title:
        raise DefinitionError("Action title is required")
    if not definition.icon:
        raise DefinitionError("Action icon is required")
    if not definition.description:
        raise DefinitionError("Action description is required")
    if not definition.actions and not definition.links:
        raise DefinitionError("At least one action is required")
    if not callable(definition.handler):
        raise DefinitionError("Handler must be callable")

    for linked in definition.links:
        names = [p.name for p in linked.parameters]
        if len(names) != len(set(names)):
            raise DefinitionError(f"Linked action {linked.label!r} has duplicate parameter names")

    metadata = definition.to_metadata()
    result = validate_action_metadata(metadata)
    if not result.success:
        raise DefinitionError(
            f"Invalid action definition: {result.error}",
            details={"errors": list(result.errors)},
        )
    return metadata


def create_action(definition: ActionDefinition) -> Action:
    """Validate ``definition`` and return a runnable Action."""
    from mlink.action import Action

    return Action(definition)
