"""
Tool Input Schemas

Tool parameters are described with a small tagged schema AST. The same tree
is used twice:

- ``to_json_schema`` translates it into the JSON-Schema-like shape returned
  by ``tools/list``
- ``validate_arguments`` compiles it into a pydantic model and validates the
  arguments of a ``tools/call`` request
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, create_model
from pydantic import ValidationError as PydanticValidationError

from error_handling import ValidationError


@dataclass(frozen=True)
class StringSchema:
    description: Optional[str] = None


@dataclass(frozen=True)
class NumberSchema:
    description: Optional[str] = None


@dataclass(frozen=True)
class BooleanSchema:
    description: Optional[str] = None


@dataclass(frozen=True)
class EnumSchema:
    values: Tuple[str, ...]
    description: Optional[str] = None


@dataclass(frozen=True)
class ArraySchema:
    items: "Schema"
    description: Optional[str] = None


@dataclass(frozen=True)
class OptionalSchema:
    inner: "Schema"


@dataclass(frozen=True)
class DefaultSchema:
    inner: "Schema"
    default: Any = None


@dataclass(frozen=True)
class ObjectSchema:
    properties: Dict[str, "Schema"] = field(default_factory=dict)
    description: Optional[str] = None


Schema = Union[
    StringSchema,
    NumberSchema,
    BooleanSchema,
    EnumSchema,
    ArraySchema,
    OptionalSchema,
    DefaultSchema,
    ObjectSchema,
]


def _is_required(schema: Any) -> bool:
    return not isinstance(schema, (OptionalSchema, DefaultSchema))


def _with_description(result: Dict[str, Any], description: Optional[str]) -> Dict[str, Any]:
    if description is not None:
        result["description"] = description
    return result


def to_json_schema(schema: Any) -> Dict[str, Any]:
    """
    Translate a schema node into its wire-level JSON Schema description.

    Unknown nodes degrade to ``{"type": "string"}`` so that tool discovery
    never fails because of a single odd parameter.
    """
    if isinstance(schema, ObjectSchema):
        properties = {key: to_json_schema(value) for key, value in schema.properties.items()}
        required = [key for key, value in schema.properties.items() if _is_required(value)]
        result: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            result["required"] = required
        return result

    if isinstance(schema, StringSchema):
        return _with_description({"type": "string"}, schema.description)

    if isinstance(schema, NumberSchema):
        return _with_description({"type": "number"}, schema.description)

    if isinstance(schema, BooleanSchema):
        return _with_description({"type": "boolean"}, schema.description)

    if isinstance(schema, EnumSchema):
        return _with_description({"type": "string", "enum": list(schema.values)}, schema.description)

    if isinstance(schema, ArraySchema):
        return {"type": "array", "items": to_json_schema(schema.items)}

    if isinstance(schema, OptionalSchema):
        return to_json_schema(schema.inner)

    if isinstance(schema, DefaultSchema):
        inner = to_json_schema(schema.inner)
        inner["default"] = schema.default
        return inner

    return {"type": "string"}


def _annotation(schema: Any, name: str) -> Any:
    """Map a schema node onto a pydantic-compatible type annotation."""
    if isinstance(schema, ObjectSchema):
        return build_model(schema, name)
    if isinstance(schema, StringSchema):
        return StrictStr
    if isinstance(schema, NumberSchema):
        return Union[StrictInt, StrictFloat]
    if isinstance(schema, BooleanSchema):
        return StrictBool
    if isinstance(schema, EnumSchema):
        return Literal[schema.values]
    if isinstance(schema, ArraySchema):
        return List[_annotation(schema.items, f"{name}Item")]
    if isinstance(schema, (OptionalSchema, DefaultSchema)):
        return Optional[_annotation(schema.inner, name)]
    return Any


def build_model(schema: ObjectSchema, name: str = "ToolArguments") -> Type[BaseModel]:
    """Compile an object schema into a pydantic model. Unknown keys are dropped."""
    fields: Dict[str, Any] = {}
    for key, child in schema.properties.items():
        child_name = f"{name}_{key}"
        if isinstance(child, DefaultSchema):
            fields[key] = (_annotation(child, child_name), Field(default=child.default, description=_description(child.inner)))
        elif isinstance(child, OptionalSchema):
            fields[key] = (_annotation(child, child_name), Field(default=None, description=_description(child.inner)))
        else:
            fields[key] = (_annotation(child, child_name), Field(..., description=_description(child)))
    return create_model(name, __config__=ConfigDict(extra="ignore"), **fields)


def _description(schema: Any) -> Optional[str]:
    return getattr(schema, "description", None)


def validate_arguments(
    schema: ObjectSchema,
    arguments: Any,
    model_name: str = "ToolArguments",
    model: Optional[Type[BaseModel]] = None,
) -> Dict[str, Any]:
    """
    Validate tool arguments against a schema.

    ``model`` is the schema compiled by ``build_model``; it is built on the fly
    when omitted. Returns the validated arguments with defaults applied.
    Optional fields the caller did not send are left out.

    Raises:
        ValidationError: with ``field`` and ``reason`` details for the first
            offending value
    """
    if model is None:
        model = build_model(schema, model_name)
    try:
        validated = model.model_validate(arguments if arguments is not None else {})
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = _field_path(schema, first.get("loc", ()))
        reason = first.get("msg", "invalid value")
        raise ValidationError(
            f"Invalid arguments: {location}: {reason}",
            details={"field": location, "reason": reason, "errors": len(exc.errors())},
        ) from exc
    return validated.model_dump(exclude_unset=True) | _defaults(schema, validated)


def _field_path(schema: Any, loc: Tuple[Any, ...]) -> str:
    """Dotted path of an error location, without pydantic's union member tags."""
    parts: List[str] = []
    node = schema
    for part in loc:
        while isinstance(node, (OptionalSchema, DefaultSchema)):
            node = node.inner
        if isinstance(node, ObjectSchema) and part in node.properties:
            node = node.properties[part]
        elif isinstance(node, ArraySchema) and isinstance(part, int):
            node = node.items
        else:
            continue
        parts.append(str(part))
    return ".".join(parts) or "<root>"


def _defaults(schema: ObjectSchema, validated: BaseModel) -> Dict[str, Any]:
    return {
        key: getattr(validated, key)
        for key, child in schema.properties.items()
        if isinstance(child, DefaultSchema)
    }
