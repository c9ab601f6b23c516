"""Validation of structured model replies against a JSON-schema fragment.

Only the subset a commit message needs is supported: `required` keys and
the `type` of each entry in `properties`.
"""

from acm.errors import SchemaError

JSON_TYPES = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
    "null": (type(None),),
}


def _matches(value, type_name: str) -> bool:
    expected = JSON_TYPES.get(type_name)
    if expected is None:
        # Unknown type names are not enforced
        return True
    # bool is a subclass of int but not a JSON number
    if isinstance(value, bool) and type_name in ("number", "integer"):
        return False
    return isinstance(value, expected)


def validate_fields(data, schema: dict) -> None:
    """Raise SchemaError naming the first missing or mistyped field."""
    if not isinstance(data, dict):
        raise SchemaError(f"Expected a JSON object, got {type(data).__name__}")

    for name in schema.get("required", []):
        if name not in data:
            raise SchemaError(f"Response is missing required field '{name}'", field=name)

    for name, prop in schema.get("properties", {}).items():
        if name not in data or not isinstance(prop, dict) or "type" not in prop:
            continue
        types = prop["type"] if isinstance(prop["type"], list) else [prop["type"]]
        if not any(_matches(data[name], t) for t in types):
            raise SchemaError(
                f"Field '{name}' must be of type {' or '.join(types)}, got {type(data[name]).__name__}",
                field=name,
            )
