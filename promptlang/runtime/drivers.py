# ==========================================
# LLM DRIVERS
# ==========================================

REQUEST_TIMEOUT = 60


class DriverError(Exception):
    """A completion request failed."""


def schema_to_json_schema(schema):
    """JSON schema for a dumped TypeObject/Type, used to steer JSON output."""
    if not schema:
        return {}
    if schema.get("kind") == "TypeObject":
        properties = {
            prop["key"]: schema_to_json_schema(prop["value"])
            for prop in schema.get("properties", [])
        }
        return {"type": "object", "properties": properties, "required": list(properties)}
    name = schema.get("name")
    if name == "list":
        items = schema_to_json_schema(schema.get("generic")) if schema.get("generic") else {}
        return {"type": "array", "items": items}
    if name in ("string", "number", "boolean"):
        return {"type": name}
    return {}


def _post(provider, url, payload, headers=None):
    """POST a JSON payload, turning transport and HTTP failures into DriverError."""
    try:
        resp = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.Timeout as e:
        raise DriverError(f"{provider} request timed out ({REQUEST_TIMEOUT}s). Try again or check your network.") from e
    except requests.exceptions.ConnectionError as e:
        raise DriverError(f"Failed to connect to {provider}. Check your internet connection and API endpoint.") from e

    if resp.status_code == 401:
        raise DriverError(f"Invalid {provider} API key.")
    if resp.status_code == 429:
        raise DriverError(f"{provider} rate limit exceeded. Wait a minute before retrying.")
    if resp.status_code >= 500:
        raise DriverError(f"{provider} server error ({resp.status_code}). Their service may be down.")
    if resp.status_code >= 400:
        raise DriverError(f"{provider} API error ({resp.status_code}): {resp.text}")
    return resp.json()


class LLMDriver(ABC):
    """Abstract base class for LLM API drivers."""

    @abstractmethod
    def complete(self, model: str, system: str, user: str, schema: Dict) -> str:
        pass


class OpenAIDriver(LLMDriver):
    """Driver for the OpenAI chat completions API."""

    url = "https://api.openai.com/v1/chat/completions"

    def complete(self, model: str, system: str, user: str, schema: Dict) -> str:
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise DriverError(
                "Missing OPENAI_API_KEY. "
                "Set it with: export OPENAI_API_KEY='your-key-here'."
            )
        system_prompt = f"{system}\n\nReturn valid JSON matching this schema:\n{json.dumps(schema)}"
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.1,
        }
        headers = {"Authorization": f"Bearer {api_key}"}
        data = _post("OpenAI", self.url, payload, headers)
        return data['choices'][0]['message']['content']


class GeminiDriver(LLMDriver):
    """Driver for the Google Gemini API."""

    def complete(self, model: str, system: str, user: str, schema: Dict) -> str:
        api_key = os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise DriverError(
                "Missing GEMINI_API_KEY. "
                "Set it with: export GEMINI_API_KEY='your-key-here'."
            )
        url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={api_key.strip()}"
        payload = {
            "contents": [{"parts": [{"text": f"System: {system}\nUser: {user}"}]}],
            "generationConfig": {"response_mime_type": "application/json"},
        }
        data = _post("Gemini", url, payload)
        return data['candidates'][0]['content']['parts'][0]['text']


class LocalDriver(LLMDriver):
    """Driver for local Ollama models."""

    url = "http://localhost:11434/api/generate"

    def complete(self, model: str, system: str, user: str, schema: Dict) -> str:
        payload = {
            "model": model,
            "prompt": f"{system}\nSchema: {json.dumps(schema)}\nUser: {user}",
            "format": "json",
            "stream": False,
        }
        data = _post("Ollama", self.url, payload)
        return data['response']


def get_driver(driver_type):
    """Factory function to get the appropriate LLM driver."""
    if driver_type == "gemini":
        return GeminiDriver()
    if driver_type == "local":
        return LocalDriver()
    return OpenAIDriver()
