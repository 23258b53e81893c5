"""
Schema Bridge - JSON Schema ⇄ runtime validation types
=======================================================

Tool parameters and agent output schemas are stored as JSON Schema. At run
time they are turned into Python types that pydantic can validate against,
and those types are turned back into the function-parameters document that
vendor APIs expect.

    JSON Schema  ──to_runtime_schema──►  runtime type  ──to_vendor_params──►  vendor doc

TYPE MAPPING (to_runtime_schema):
    JSON Schema                  →   Python type
    "string"                         str
    "number"                         float
    "boolean"                        bool
    "array" (items)                  list[<items>]
    "object" with properties         pydantic model (create_model)
    "object" without properties      dict[str, Any]
    anything else / missing          Any

REQUIRED vs OPTIONAL:
    - With a `required` list, listed properties are required and the rest
      default to None
    - Without one, every property is required

Neither direction validates values or guarantees a lossless round trip; only
the type tags of primitive leaves survive JSON → runtime → vendor.
"""

import json
import keyword
import types
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union, get_args, get_origin

from loguru import logger
from pydantic import BaseModel, Field, create_model


EMPTY_OBJECT: dict[str, Any] = {"type": "object", "properties": {}, "required": []}


def _needs_alias(key: str) -> bool:
    return (
        not key.isidentifier()
        or key.startswith("_")
        or key.startswith("model_")
        or keyword.iskeyword(key)
        or hasattr(BaseModel, key)
    )


def _model_name(name: str) -> str:
    cleaned = "".join(part.capitalize() for part in name.replace("-", "_").split("_") if part)
    return cleaned or "DynamicSchema"


def to_runtime_schema(json_schema: Any, name: str = "DynamicSchema") -> Any:
    """
    Convert a JSON Schema description into a runtime type.

    Unknown or missing type tags map to Any; this function does not raise for
    odd input. Strings are decoded as JSON first.

    Args:
        json_schema: JSON Schema dict (or JSON string)
        name: Model name used for generated pydantic models

    Returns:
        A type usable with pydantic's TypeAdapter
    """
    if isinstance(json_schema, str):
        try:
            json_schema = json.loads(json_schema)
        except json.JSONDecodeError:
            return Any
    if not isinstance(json_schema, dict):
        return Any

    schema_type = json_schema.get("type")

    if schema_type == "string":
        return str
    if schema_type == "number":
        return float
    if schema_type == "boolean":
        return bool
    if schema_type == "array":
        item_type = to_runtime_schema(json_schema.get("items") or {}, f"{name}Item")
        return list[item_type]
    if schema_type == "object":
        properties = json_schema.get("properties")
        if not isinstance(properties, dict):
            return dict[str, Any]
        return _build_model(properties, json_schema.get("required"), name)

    return Any


def _build_model(
    properties: dict[str, Any], required: list[str] | None, name: str
) -> type[BaseModel]:
    """
    Dynamically create a pydantic model from JSON Schema properties.

    Property names that are not valid Python identifiers (or that clash with
    BaseModel attributes) are stored under a safe name with the original key
    as alias.
    """
    fields: dict[str, Any] = {}
    for index, (key, prop) in enumerate(properties.items()):
        prop = prop if isinstance(prop, dict) else {}
        field_type = to_runtime_schema(prop, f"{name}_{key}")
        is_required = required is None or key in required

        field_kwargs: dict[str, Any] = {}
        if prop.get("description"):
            field_kwargs["description"] = prop["description"]

        field_name = key
        if _needs_alias(key):
            field_name = f"field_{index}"
            while field_name in properties or field_name in fields:
                field_name = f"{field_name}_"
            field_kwargs["alias"] = key

        if is_required:
            fields[field_name] = (field_type, Field(..., **field_kwargs))
        else:
            fields[field_name] = (Optional[field_type], Field(None, **field_kwargs))

    return create_model(_model_name(name), **fields)


def to_vendor_params(runtime: Any) -> dict[str, Any]:
    """
    Describe a runtime type as a vendor function-parameters document.

    Always returns an object root. A non-object description is wrapped as
    ``{"type": "object", "properties": {"input": ...}, "required": []}``.
    Any failure yields the empty object document; this function never raises.
    """
    try:
        doc = _describe(runtime)
    except Exception as e:
        logger.warning(f"Could not describe runtime schema {runtime!r}: {e}")
        return dict(EMPTY_OBJECT, properties={}, required=[])

    if doc.get("type") != "object":
        return {"type": "object", "properties": {"input": doc}, "required": []}

    doc.setdefault("properties", {})
    doc.setdefault("required", [])
    return doc


def _describe(tp: Any) -> dict[str, Any]:
    origin = get_origin(tp)

    if origin is Annotated:
        return _describe(get_args(tp)[0])

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(members) == 1:
            return _describe(members[0])
        return {"anyOf": [_describe(member) for member in members]}

    if origin is Literal:
        return {"type": "string", "enum": [str(value) for value in get_args(tp)]}

    if origin in (list, set, frozenset, tuple) or tp in (list, set, frozenset, tuple):
        args = get_args(tp)
        items = _describe(args[0]) if args else {"type": "string"}
        return {"type": "array", "items": items}

    if origin is dict or tp is dict:
        return {"type": "object", "additionalProperties": True}

    if isinstance(tp, type):
        if issubclass(tp, bool):
            return {"type": "boolean"}
        if issubclass(tp, Enum):
            return {"type": "string", "enum": [str(member.value) for member in tp]}
        if issubclass(tp, (int, float)):
            return {"type": "number"}
        if issubclass(tp, str):
            return {"type": "string"}
        if issubclass(tp, BaseModel):
            return _describe_model(tp)

    return {"type": "string"}


def _describe_model(model: type[BaseModel]) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for name, field in model.model_fields.items():
        key = field.alias or name
        prop = _describe(field.annotation)
        if field.description:
            prop["description"] = field.description
        properties[key] = prop
        if field.is_required():
            required.append(key)
    return {"type": "object", "properties": properties, "required": required}
