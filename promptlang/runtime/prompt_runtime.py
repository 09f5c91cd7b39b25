# ==========================================
# PROMPT EXECUTION
# ==========================================

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class PromptCallError(Exception):
    """A prompt call failed: rendering, the completion request, or its result."""


def extract_json(text):
    """
    Pull a JSON value out of a model response.

    Tries, in order: the whole text, each fenced code block, then the first
    object or array that decodes starting at a ``{`` or ``[``. Returns None
    when nothing decodes.
    """
    if not isinstance(text, str) or not text.strip():
        return None

    try:
        return json.loads(text.strip())
    except ValueError:
        pass

    for block in _CODE_BLOCK.findall(text):
        try:
            return json.loads(block.strip())
        except ValueError:
            log_debug("Code block is not valid JSON, trying next pattern")

    decoder = json.JSONDecoder()
    for match in re.finditer(r"[\[{]", text):
        try:
            value, _end = decoder.raw_decode(text, match.start())
            return value
        except ValueError:
            continue

    return None


async def _complete(prompt_name, prompt_path, validated_input, return_schema):
    """Render the template and ask the configured model for a completion."""
    rendered = render_prompt(prompt_path, validated_input)
    log_debug(f"Rendered prompt: {rendered}")

    model = get_model_name()
    config = load_model_config(model)
    driver = get_driver(config.get("type", "openai"))
    system = f"You are {prompt_name}. Follow the instructions carefully."
    schema = schema_to_json_schema(return_schema)
    # Drivers block on requests; keep the event loop free
    return await asyncio.to_thread(driver.complete, config.get("model", model), system, rendered, schema)


async def call_prompt(prompt_name, prompt_path, validated_input, return_schema):
    """
    Run one prompt call and return its validated result.

    A mocked prompt (``PROMPT_MOCKS``) skips the model and uses the mock's
    value instead. JSON found in the output is validated against
    ``return_schema`` and returned as Records; output with no JSON in it is
    returned as raw text.
    """
    log_debug(f"Calling prompt {prompt_name} with input: {validated_input}")

    try:
        if prompt_name in PROMPT_MOCKS:
            mock = PROMPT_MOCKS[prompt_name]
            output = mock(validated_input) if callable(mock) else mock
            if asyncio.iscoroutine(output):
                output = await output
        else:
            output = await _complete(prompt_name, prompt_path, validated_input, return_schema)
    except Exception as e:
        raise PromptCallError(f"Failed to call prompt {prompt_name}: {e}") from e

    if isinstance(output, str):
        log_debug(f"Output text: {output}")
        parsed = extract_json(output)
        if parsed is None:
            log_debug("No JSON found in response, returning raw text")
            return output
    else:
        parsed = output

    try:
        return to_record(validate_type(parsed, return_schema))
    except PromptTypeError as e:
        raise PromptCallError(f"Failed to call prompt {prompt_name}: {e}") from e
