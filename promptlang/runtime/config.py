# ==========================================
# CONFIGURATION
# ==========================================

DEFAULT_MODEL = "gpt-4o"


def get_model_name():
    """Model used for prompt calls, from PROMPTLANG_MODEL."""
    return os.environ.get("PROMPTLANG_MODEL") or DEFAULT_MODEL


def load_model_config(model_name):
    """
    Load a model's entry from the models.json registry.

    The registry is read from the working directory, then from
    ``~/.promptlang/models.json``. Unknown models and unreadable registries
    fall back to the OpenAI driver.
    """
    default = {"type": "openai"}
    paths = ["models.json", os.path.expanduser("~/.promptlang/models.json")]
    for path in paths:
        if not os.path.exists(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                registry = json.load(f)
        except (OSError, ValueError) as e:
            log_error(f"Could not read model registry {path}: {e}")
            return default
        entry = registry.get(model_name) if isinstance(registry, dict) else None
        return entry if isinstance(entry, dict) else default
    return default
