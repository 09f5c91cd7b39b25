# ==========================================
# BUILTINS
# ==========================================

class _Builtins:
    """Functions every program can call: print, stringify, parse."""

    @staticmethod
    def print(*args):
        """Print the arguments and return the last one."""
        builtins.print(*args)
        return args[-1] if args else None

    @staticmethod
    def stringify(value):
        return json.dumps(value, indent=2)

    @staticmethod
    def parse(text):
        try:
            return to_record(json.loads(text))
        except ValueError as e:
            log_error(f"Error parsing JSON: {e}")
            raise ValueError(f"Failed to parse JSON: {e}") from e


_builtins = _Builtins()
