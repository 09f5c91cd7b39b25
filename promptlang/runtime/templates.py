# ==========================================
# PROMPT TEMPLATES
# ==========================================

_template_env = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def resolve_template_path(prompt_path):
    """
    Locate a prompt template.

    Absolute paths are used as given. Relative paths are looked up in the
    working directory first, then next to the running program.
    """
    if os.path.isabs(prompt_path):
        return prompt_path
    candidate = os.path.join(os.getcwd(), prompt_path)
    if os.path.exists(candidate):
        return candidate
    program = globals().get("__file__")
    if program:
        return os.path.join(os.path.dirname(os.path.abspath(program)), prompt_path)
    return candidate


def render_prompt(prompt_path, variables):
    """Render the template at ``prompt_path`` with the prompt input."""
    template_path = resolve_template_path(prompt_path)
    if not os.path.exists(template_path):
        raise FileNotFoundError(f"Prompt template file not found: {template_path}")
    with open(template_path, "r", encoding="utf-8") as f:
        source = f.read()
    try:
        return _template_env.from_string(source).render(variables)
    except jinja2.TemplateError as e:
        log_error(f"Error rendering prompt template {template_path}: {e}")
        raise
