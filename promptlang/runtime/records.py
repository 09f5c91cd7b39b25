# ==========================================
# RECORDS
# ==========================================

class Record(dict):
    """Object value of a promptlang program: a dict whose keys read as attributes."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"Record has no property '{name}'") from None

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        try:
            del self[name]
        except KeyError:
            raise AttributeError(f"Record has no property '{name}'") from None


def to_record(value):
    """Recursively turn decoded JSON objects into Records."""
    if isinstance(value, dict):
        return Record({key: to_record(item) for key, item in value.items()})
    if isinstance(value, list):
        return [to_record(item) for item in value]
    return value


def destructure(value, names):
    """
    Values of ``names`` taken from an object, as a tuple.

    Mappings are read by key and other objects by attribute; a missing
    property yields None.
    """
    if isinstance(value, dict):
        return tuple(value.get(name) for name in names)
    return tuple(getattr(value, name, None) for name in names)
