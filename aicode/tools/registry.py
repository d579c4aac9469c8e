"""Tool registry and executor."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from aicode.config import config
from aicode.models import ToolDefinition

logger = config.get_logger(__name__)

ToolHandler = Callable[..., Awaitable[Any]]

_JSON_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
}


class ToolNotFoundError(LookupError):
    """Raised when executing a tool name nobody registered."""


class ToolArgumentError(ValueError):
    """Raised when tool arguments do not match the declared parameters."""


def build_args_model(definition: ToolDefinition) -> type[BaseModel]:
    """Build a strict pydantic model from the definition's parameter schema.

    Each declared property becomes a field typed after its JSON ``type``;
    properties listed in ``required`` have no default. Undeclared arguments
    are forbidden.

    Returns:
        The arguments model class.
    """
    schema = definition.parameters or {}
    required = set(schema.get("required", []))
    fields: dict[str, Any] = {}
    for name, prop in schema.get("properties", {}).items():
        annotation = _JSON_TYPES.get(prop.get("type", ""), Any)
        fields[name] = (annotation, ... if name in required else None)

    return create_model(
        f"{definition.name}Args",
        __config__=ConfigDict(extra="forbid", strict=True),
        **fields,
    )


def validate_arguments(
    definition: ToolDefinition,
    args: Mapping[str, Any],
    model: type[BaseModel] | None = None,
) -> None:
    """Check ``args`` against the definition's parameter schema.

    Args:
        definition: The tool being called.
        args: Arguments proposed for the call.
        model: Prebuilt arguments model; built from ``definition`` if None.

    Raises:
        ToolArgumentError: On a missing, unknown or mistyped argument.
    """
    model = model or build_args_model(definition)
    try:
        model.model_validate(dict(args))
    except ValidationError as e:
        errors = e.errors()
        missing = [str(err["loc"][0]) for err in errors if err["type"] == "missing"]
        if missing:
            msg = f"Tool {definition.name} missing arguments: {', '.join(missing)}"
            raise ToolArgumentError(msg) from e

        name = str(errors[0]["loc"][0])
        if errors[0]["type"] == "extra_forbidden":
            msg = f"Tool {definition.name} got unexpected argument: {name}"
        else:
            expected = definition.parameters["properties"][name]["type"]
            msg = f"Tool {definition.name} argument {name} must be {expected}"
        raise ToolArgumentError(msg) from e


class ToolRegistry:
    """Maps tool names to definitions and async handlers."""

    def __init__(self) -> None:
        self._tools: dict[
            str, tuple[ToolDefinition, ToolHandler, type[BaseModel]]
        ] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        if definition.name in self._tools:
            logger.warning("Replacing registered tool: %s", definition.name)
        self._tools[definition.name] = (
            definition,
            handler,
            build_args_model(definition),
        )
        logger.debug("Tool registered: %s", definition.name)

    def list_definitions(self) -> list[ToolDefinition]:
        return [definition for definition, _, _ in self._tools.values()]

    def get(self, name: str) -> ToolDefinition | None:
        entry = self._tools.get(name)
        return entry[0] if entry else None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(self, name: str, args: Mapping[str, Any] | None = None) -> str:
        """Run a registered tool.

        Returns:
            The tool result; non-string results are JSON encoded.

        Raises:
            ToolNotFoundError: If ``name`` is not registered.
        """
        entry = self._tools.get(name)
        if entry is None:
            msg = f"Tool not found: {name}"
            raise ToolNotFoundError(msg)

        definition, handler, args_model = entry
        args = dict(args or {})
        validate_arguments(definition, args, args_model)

        logger.info("Executing tool: %s", name)
        try:
            result = await handler(**args)
        except Exception:
            logger.exception("Tool %s failed", name)
            raise

        logger.info("Tool %s completed", name)
        if isinstance(result, str):
            return result
        return json.dumps(result, ensure_ascii=False, default=str)
