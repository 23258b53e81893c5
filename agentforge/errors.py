"""AgentForge exception hierarchy.

All AgentForge-specific exceptions inherit from AgentForgeError. Each class
carries the HTTP status the API layer answers with.
"""


class AgentForgeError(Exception):
    """Base exception for all AgentForge errors."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(AgentForgeError):
    """Malformed or inconsistent input."""

    status_code = 400


class GuardrailViolation(InvalidRequestError):
    """Input or output rejected by a guardrail rule."""

    def __init__(self, message: str = "", *, stage: str = "input", rule: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.rule = rule


class NotFoundError(AgentForgeError):
    """Requested agent, tool or execution does not exist."""

    status_code = 404


class AuthenticationError(AgentForgeError):
    """Missing or rejected credentials."""

    status_code = 401


class MissingAPIKeyError(AuthenticationError):
    """No API key available for the selected provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"API key required for provider: {provider}")
        self.provider = provider


class PolicyError(AgentForgeError):
    """Action denied by policy."""

    status_code = 403


class BuiltinToolError(PolicyError):
    """Attempt to modify or delete a built-in tool."""


class ProviderError(AgentForgeError):
    """Error response from an LLM vendor."""

    _VENDOR_NAMES = {
        "openai": "OpenAI",
        "anthropic": "Anthropic",
        "google": "Google",
        "litellm": "LiteLLM",
    }

    def __init__(self, provider: str, body: str, *, status_code: int | None = None) -> None:
        vendor = self._VENDOR_NAMES.get(provider, provider)
        super().__init__(f"{vendor} API error: {body}")
        self.provider = provider
        self.body = body
        self.vendor_status = status_code


class AgentExecutionError(AgentForgeError):
    """The turn loop could not produce an acceptable result."""


def classify_error(error: Exception) -> int:
    """HTTP status for a failed request: error type first, then message text."""
    if isinstance(error, AgentForgeError) and error.status_code != 500:
        return error.status_code
    message = str(error)
    if "API key" in message:
        return 401
    if "not found" in message:
        return 404
    return 500
