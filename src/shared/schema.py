"""JSON Schema utilities."""

from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel

from shared.models import FieldError


def validate_schema(data: Any, schema: dict[str, Any], root: str = "") -> list[FieldError]:
    """
    Validate data against a JSON Schema.

    Args:
        data: The data to validate
        schema: JSON Schema to validate against
        root: Path prefix for reported errors

    Returns:
        List of field errors, empty when the data is valid
    """
    if not schema:
        return []

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))

    field_errors = []
    for error in errors:
        parts = [root] if root else []
        parts.extend(str(p) for p in error.absolute_path)
        code = "invalid_type" if error.validator in ("type", "required") else "custom"
        field_errors.append(FieldError(
            path=".".join(parts) or "(root)",
            message=error.message,
            code=code,
        ))
    return field_errors


def _inline(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_inline(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        target = defs[node["$ref"].rsplit("/", 1)[-1]]
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        return _inline({**target, **siblings}, defs)

    for key in ("allOf", "anyOf"):
        options = node.get(key)
        if not options:
            continue
        non_null = [o for o in options if o.get("type") != "null"]
        if len(non_null) == 1:
            siblings = {k: v for k, v in node.items() if k != key}
            return _inline({**non_null[0], **siblings}, defs)

    cleaned = {}
    for key, value in node.items():
        if key in ("title", "$defs"):
            continue
        if key == "default" and value is None:
            continue
        if key == "properties":
            cleaned[key] = {name: _inline(prop, defs) for name, prop in value.items()}
        else:
            cleaned[key] = _inline(value, defs)
    return cleaned


def model_input_schema(model: type[BaseModel]) -> dict[str, Any]:
    """
    Create a tool input schema from a pydantic model.

    The schema is generated from the same model that validates the call,
    with wire aliases as property names, references inlined and nullable
    unions collapsed so that simple MCP clients can read it.

    Args:
        model: Request model

    Returns:
        JSON Schema dictionary
    """
    raw = model.model_json_schema(by_alias=True)
    schema = _inline(raw, raw.get("$defs", {}))
    schema.setdefault("properties", {})
    schema.setdefault("required", [])
    schema["additionalProperties"] = False
    return schema


# Strapi attribute types mapped to JSON Schema types. Types missing here
# (relations, media, components, dynamic zones, json) are left unconstrained.
ATTRIBUTE_TYPE_MAPPING = {
    "string": "string",
    "text": "string",
    "richtext": "string",
    "email": "string",
    "password": "string",
    "uid": "string",
    "enumeration": "string",
    "date": "string",
    "datetime": "string",
    "time": "string",
    "integer": "integer",
    "biginteger": "string",
    "float": "number",
    "decimal": "number",
    "boolean": "boolean",
}


def attributes_to_schema(
    attributes: dict[str, dict[str, Any]],
    enforce_required: bool = True
) -> dict[str, Any]:
    """
    Create a JSON Schema from a Strapi content-type attribute map.

    Args:
        attributes: Attribute definitions keyed by field name
        enforce_required: Include attributes flagged ``required``

    Returns:
        JSON Schema dictionary
    """
    properties = {}
    required = []

    for name, attribute in attributes.items():
        attr_type = attribute.get("type")
        json_type = ATTRIBUTE_TYPE_MAPPING.get(attr_type)
        param_schema: dict[str, Any] = {}

        if json_type:
            # Strapi accepts null for any optional scalar.
            param_schema["type"] = [json_type, "null"]
        if attr_type == "enumeration" and attribute.get("enum"):
            param_schema["enum"] = [*attribute["enum"], None]
        if json_type == "string" and "maxLength" in attribute:
            param_schema["maxLength"] = attribute["maxLength"]

        properties[name] = param_schema

        if enforce_required and attribute.get("required"):
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema
