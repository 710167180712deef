"""
Schema validation for everything that crosses a trust boundary.

Two layers:

    Structural: JSON Schema (draft 2020-12) documents checked with
    ``jsonschema``: field presence, types, lengths, address/hex formats.

    Semantic: invariants JSON Schema expresses poorly or with unhelpful
    messages: "at least one action", "transaction or transactions",
    compilable parameter patterns.

Every ``validate_*`` function is total: it returns a ValidationResult and
never raises for bad input. Callers decide whether to escalate via
``ValidationResult.unwrap()``.

Parameter *values* (what a user typed into a form) are checked separately
by ``validate_parameter_values``, which reports every violation at once.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, TypeVar

import jsonschema  # type: ignore[import-untyped]

from mlink.errors import ParameterValidationError, SchemaValidationError
from mlink.metadata import (
    ACTION_BUTTON_TYPES,
    LINKED_ACTION_TYPES,
    METADATA_TYPES,
    ActionMetadata,
    LinkedAction,
)
from mlink.params import (
    NUMERIC_PARAMETER_TYPES,
    PARAMETER_TYPES,
    SELECTABLE_PARAMETER_TYPES,
    ActionParameter,
    ParameterLike,
)
from mlink.transaction import (
    EVMTransaction,
    TransactionRequest,
    TransactionResponse,
)

T = TypeVar("T")

# Validation patterns
ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}\Z"
HEX_PATTERN = r"^0x[a-fA-F0-9]*\Z"
ICON_PATTERN = (
    r"^(https?://[^\s/]+[^\s]*"
    r"|data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/]+={0,2}"
    r"|/(?!/)[^\s]*)\Z"
)

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)
_HEX_RE = re.compile(HEX_PATTERN)

NO_ACTIONS_MESSAGE = "Action must have at least one action"
NO_TRANSACTION_MESSAGE = "Response must include transaction or transactions"


# =========================================================================
# JSON Schema documents
# =========================================================================

# ``errorMessage`` is ignored by jsonschema; the formatter below prefers it
# over the library's default message for pattern failures.
_DEFS: Dict[str, Any] = {
    "Address": {
        "type": "string",
        "pattern": ADDRESS_PATTERN,
        "errorMessage": "Invalid Ethereum address",
    },
    "Hex": {
        "type": "string",
        "pattern": HEX_PATTERN,
        "errorMessage": "Invalid hex data",
    },
    "ActionButton": {
        "type": "object",
        "required": ["label", "value", "type"],
        "properties": {
            "label": {"type": "string", "minLength": 1, "maxLength": 50},
            "value": {"type": "string", "minLength": 1},
            "type": {"enum": list(ACTION_BUTTON_TYPES)},
            "placeholder": {"type": "string"},
            "disabled": {"type": "boolean"},
        },
    },
    "ActionParameterOption": {
        "type": "object",
        "required": ["label", "value"],
        "properties": {
            "label": {"type": "string", "minLength": 1},
            "value": {"type": "string"},
            "selected": {"type": "boolean"},
        },
    },
    "ActionParameter": {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "type": {"enum": list(PARAMETER_TYPES)},
            "label": {"type": "string"},
            "required": {"type": "boolean"},
            "pattern": {"type": "string"},
            "patternDescription": {"type": "string"},
            "min": {"type": ["string", "number"]},
            "max": {"type": ["string", "number"]},
            "options": {
                "type": "array",
                "items": {"$ref": "#/$defs/ActionParameterOption"},
            },
        },
        "if": {
            "required": ["type"],
            "properties": {"type": {"enum": list(SELECTABLE_PARAMETER_TYPES)}},
        },
        "then": {
            "required": ["options"],
            "properties": {"options": {"minItems": 1}},
        },
    },
    "LinkedAction": {
        "type": "object",
        "required": ["href", "label"],
        "properties": {
            "type": {"enum": list(LINKED_ACTION_TYPES)},
            "href": {"type": "string", "minLength": 1},
            "label": {"type": "string", "minLength": 1, "maxLength": 50},
            "disabled": {"type": "boolean"},
            "parameters": {
                "type": "array",
                "items": {"$ref": "#/$defs/ActionParameter"},
            },
        },
    },
    "ActionMetadata": {
        "type": "object",
        "required": ["title", "icon", "description"],
        "properties": {
            "type": {"enum": list(METADATA_TYPES)},
            "title": {"type": "string", "minLength": 1, "maxLength": 100},
            "icon": {
                "type": "string",
                "pattern": ICON_PATTERN,
                "errorMessage": "Icon must be an http(s) URL, a base64 image or a root-relative path",
            },
            "description": {"type": "string", "minLength": 1, "maxLength": 500},
            "label": {"type": "string"},
            "actions": {
                "type": "array",
                "items": {"$ref": "#/$defs/ActionButton"},
            },
            "links": {
                "type": "object",
                "required": ["actions"],
                "properties": {
                    "actions": {
                        "type": "array",
                        "items": {"$ref": "#/$defs/LinkedAction"},
                    },
                },
            },
            "disabled": {"type": "boolean"},
            "error": {
                "type": "object",
                "required": ["message"],
                "properties": {"message": {"type": "string"}},
            },
        },
    },
    "TransactionRequest": {
        "type": "object",
        "required": ["account", "action"],
        "properties": {
            "account": {"$ref": "#/$defs/Address"},
            "action": {"type": "string", "minLength": 1},
            "input": {"type": "string"},
            "data": {
                "type": "object",
                "additionalProperties": {
                    "anyOf": [
                        {"type": "string"},
                        {"type": "array", "items": {"type": "string"}},
                    ],
                },
            },
        },
    },
    "EVMTransaction": {
        "type": "object",
        "required": ["to", "value", "data", "chainId"],
        "properties": {
            "to": {"$ref": "#/$defs/Address"},
            "value": {
                "type": "string",
                "pattern": r"^[0-9]+\Z",
                "errorMessage": "Invalid value: expected a decimal base-unit amount",
            },
            "data": {"$ref": "#/$defs/Hex"},
            "chainId": {"type": "integer", "exclusiveMinimum": 0},
        },
    },
    "NextActionLink": {
        "type": "object",
        "required": ["type"],
        "properties": {"type": {"enum": ["post", "inline"]}},
        "if": {"properties": {"type": {"const": "inline"}}},
        "then": {
            "required": ["action"],
            "properties": {"action": {"$ref": "#/$defs/ActionMetadata"}},
        },
        "else": {
            "required": ["href"],
            "properties": {"href": {"type": "string", "minLength": 1}},
        },
    },
    "TransactionResponse": {
        "type": "object",
        "properties": {
            "transaction": {"$ref": "#/$defs/EVMTransaction"},
            "transactions": {
                "type": "array",
                "minItems": 1,
                "items": {"$ref": "#/$defs/EVMTransaction"},
            },
            "message": {"type": "string"},
            "links": {
                "type": "object",
                "properties": {"next": {"$ref": "#/$defs/NextActionLink"}},
            },
        },
    },
}


def _schema(name: str) -> Dict[str, Any]:
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "$defs": _DEFS,
        "$ref": f"#/$defs/{name}",
    }


ACTION_METADATA_SCHEMA = _schema("ActionMetadata")
LINKED_ACTION_SCHEMA = _schema("LinkedAction")
ACTION_PARAMETER_SCHEMA = _schema("ActionParameter")
TRANSACTION_REQUEST_SCHEMA = _schema("TransactionRequest")
TRANSACTION_RESPONSE_SCHEMA = _schema("TransactionResponse")
EVM_TRANSACTION_SCHEMA = _schema("EVMTransaction")

_VALIDATORS: Dict[str, jsonschema.Draft202012Validator] = {}


def _validator(schema: Dict[str, Any]) -> jsonschema.Draft202012Validator:
    key = schema["$ref"]
    if key not in _VALIDATORS:
        _VALIDATORS[key] = jsonschema.Draft202012Validator(schema)
    return _VALIDATORS[key]


# =========================================================================
# ValidationResult
# =========================================================================


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Tagged success/failure result of a validation.

    Attributes:
        success: Whether validation passed.
        data: Parsed value on success, None on failure.
        error: All failure messages joined with "; ", None on success.
        errors: The individual failure messages.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    errors: tuple[str, ...] = ()

    @classmethod
    def ok(cls, data: T) -> ValidationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, errors: Iterable[str]) -> ValidationResult[T]:
        collected = tuple(errors)
        return cls(success=False, error="; ".join(collected), errors=collected)

    def unwrap(self) -> T:
        """Return ``data`` or raise SchemaValidationError with the joined message."""
        if not self.success:
            raise SchemaValidationError(
                self.error or "validation failed",
                details={"errors": list(self.errors)},
            )
        return self.data  # type: ignore[return-value]


# =========================================================================
# Structural helpers
# =========================================================================


def _as_instance(data: Any) -> Any:
    """Turn protocol dataclasses into their wire dicts; pass anything else through.

    Raises whatever ``to_dict`` raises for a malformed dataclass.
    """
    to_dict = getattr(data, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return data


def _format_error(error: jsonschema.ValidationError) -> str:
    message = error.message
    if error.validator == "pattern" and isinstance(error.schema, dict):
        message = error.schema.get("errorMessage", message)
    path = ".".join(str(p) for p in error.absolute_path)
    return f"{path}: {message}" if path else message


def _structural_errors(schema: Dict[str, Any], instance: Any) -> List[str]:
    errors = sorted(
        _validator(schema).iter_errors(instance),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    return [_format_error(e) for e in errors]


def _pattern_error(param: Mapping[str, Any]) -> str | None:
    pattern = param.get("pattern")
    if pattern is None:
        return None
    try:
        re.compile(pattern)
    except re.error as exc:
        return f"pattern: invalid regular expression ({exc})"
    return None


def _pattern_errors(parameters: Iterable[Mapping[str, Any]], prefix: str) -> List[str]:
    errors: List[str] = []
    for index, param in enumerate(parameters):
        error = _pattern_error(param)
        if error is not None:
            errors.append(f"{prefix}{index}.{error}")
    return errors


def _linked_action_errors(linked: Mapping[str, Any], prefix: str) -> List[str]:
    return _pattern_errors(linked.get("parameters") or [], f"{prefix}parameters.")


def _metadata_errors(metadata: Mapping[str, Any], prefix: str = "") -> List[str]:
    errors: List[str] = []
    legacy = metadata.get("actions") or []
    linked = (metadata.get("links") or {}).get("actions") or []
    if not legacy and not linked:
        errors.append(f"{prefix}{NO_ACTIONS_MESSAGE}")
    for index, action in enumerate(linked):
        errors.extend(_linked_action_errors(action, f"{prefix}links.actions.{index}."))
    return errors


def _response_errors(response: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []
    if response.get("transaction") is None and not response.get("transactions"):
        errors.append(NO_TRANSACTION_MESSAGE)
    next_link = (response.get("links") or {}).get("next")
    if isinstance(next_link, Mapping) and next_link.get("type") == "inline":
        errors.extend(_metadata_errors(next_link["action"], "links.next.action."))
    return errors


def _validate(
    schema: Dict[str, Any],
    data: Any,
    semantic: Callable[[Any], List[str]] | None,
    parse: Callable[[Any], T],
) -> ValidationResult[T]:
    try:
        instance = _as_instance(data)
    except (TypeError, ValueError, AttributeError) as exc:
        return ValidationResult.fail([f"Cannot serialize {type(data).__name__}: {exc}"])
    errors = _structural_errors(schema, instance)
    if not errors and semantic is not None:
        errors = semantic(instance)
    if errors:
        return ValidationResult.fail(errors)
    try:
        parsed = parse(instance)
    except (TypeError, ValueError, KeyError) as exc:
        return ValidationResult.fail([f"Cannot parse value: {exc}"])
    return ValidationResult.ok(parsed)


# =========================================================================
# Public validators
# =========================================================================


def validate_action_metadata(data: Any) -> ValidationResult[ActionMetadata]:
    return _validate(ACTION_METADATA_SCHEMA, data, _metadata_errors, ActionMetadata.from_dict)


def validate_transaction_request(data: Any) -> ValidationResult[TransactionRequest]:
    return _validate(TRANSACTION_REQUEST_SCHEMA, data, None, TransactionRequest.from_dict)


def validate_transaction_response(data: Any) -> ValidationResult[TransactionResponse]:
    return _validate(
        TRANSACTION_RESPONSE_SCHEMA, data, _response_errors, TransactionResponse.from_dict
    )


def validate_evm_transaction(data: Any) -> ValidationResult[EVMTransaction]:
    return _validate(EVM_TRANSACTION_SCHEMA, data, None, EVMTransaction.from_dict)


def validate_linked_action(data: Any) -> ValidationResult[LinkedAction]:
    return _validate(
        LINKED_ACTION_SCHEMA,
        data,
        lambda linked: _linked_action_errors(linked, ""),
        LinkedAction.from_dict,
    )


def validate_parameter(data: Any) -> ValidationResult[ActionParameter]:
    return _validate(
        ACTION_PARAMETER_SCHEMA,
        data,
        lambda param: [e for e in [_pattern_error(param)] if e is not None],
        ActionParameter.from_dict,
    )


def is_valid_address(address: str) -> bool:
    return bool(_ADDRESS_RE.fullmatch(address))


def is_valid_hex(value: str) -> bool:
    return bool(_HEX_RE.fullmatch(value))


# =========================================================================
# Parameter values
# =========================================================================


def _first_value(value: Any) -> str | None:
    """Collapse a form value to the string that gets checked, or None if empty."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = value[0]
        if value is None:
            return None
    if not str(value).strip():
        return None
    return str(value)


def _parse_number(raw: Any) -> float | None:
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _check_parameter(param: ActionParameter, value: Any) -> List[str]:
    name = param.display_name
    raw = _first_value(value)

    if raw is None:
        if param.required:
            return [f"{name} is required"]
        return []

    errors: List[str] = []

    if param.pattern is not None:
        try:
            matched = re.search(param.pattern, raw) is not None
        except re.error:
            matched = False
        if not matched:
            errors.append(param.pattern_description or f"{name} has an invalid format")

    if param.type in NUMERIC_PARAMETER_TYPES:
        number = _parse_number(raw)
        if number is None:
            errors.append(f"{name} must be a number")
        else:
            if param.min is not None:
                low = _parse_number(param.min)
                if low is not None and number < low:
                    errors.append(f"{name} must be at least {param.min}")
            if param.max is not None:
                high = _parse_number(param.max)
                if high is not None and number > high:
                    errors.append(f"{name} must be at most {param.max}")

    if param.type == "address" and not is_valid_address(raw):
        errors.append(f"{name} must be a valid address")

    return errors


def validate_parameter_values(
    parameters: Iterable[ParameterLike],
    values: Mapping[str, Any],
) -> ValidationResult[Dict[str, Any]]:
    """Check user-entered values against their parameter definitions.

    Every parameter is checked and every violation collected, so a form
    can report all problems in one pass.

    Args:
        parameters: Parameter definitions (dataclasses or wire dicts).
        values: Parameter name → string or list of strings.

    Returns:
        ValidationResult with the values on success, or the combined
        message and the individual errors on failure.
    """
    errors: List[str] = []
    for param in parameters:
        if not isinstance(param, ActionParameter):
            param = ActionParameter.from_dict(param)
        errors.extend(_check_parameter(param, values.get(param.name)))
    if errors:
        return ValidationResult.fail(errors)
    return ValidationResult.ok(dict(values))


def check_parameter_values(
    parameters: Iterable[ParameterLike],
    values: Mapping[str, Any],
) -> Dict[str, Any]:
    """Like validate_parameter_values, but raise ParameterValidationError."""
    result = validate_parameter_values(parameters, values)
    if not result.success:
        raise ParameterValidationError(list(result.errors))
    return result.data  # type: ignore[return-value]
