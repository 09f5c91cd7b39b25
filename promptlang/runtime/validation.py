# ==========================================
# TYPE VALIDATION
# ==========================================

class PromptTypeError(TypeError):
    """A value does not match a declared prompt schema."""


def type_name(value):
    """Name of a value's type in schema terms."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def validate_type(data, schema):
    """
    Check ``data`` against a dumped ``TypeObject`` or ``Type`` schema.

    Object schemas require every declared property and validate each one
    recursively; ``list<T>`` requires a list and validates every element
    against ``T``. Other type names are not checked. Returns the validated
    data (the same object for dicts).

    Raises:
        PromptTypeError: on the first mismatch
    """
    if not schema:
        return data

    kind = schema.get("kind")
    if kind == "TypeObject":
        if not isinstance(data, dict):
            raise PromptTypeError(f"Expected object, got {type_name(data)}")
        for prop in schema.get("properties", []):
            key = prop["key"]
            if key not in data:
                raise PromptTypeError(f"Missing required property: {key}")
            data[key] = validate_type(data[key], prop["value"])
    elif kind == "Type" and schema.get("name") == "list" and schema.get("generic"):
        if not isinstance(data, list):
            raise PromptTypeError(f"Expected array, got {type_name(data)}")
        data = [validate_type(item, schema["generic"]) for item in data]

    return data
