"""
domain.exceptions - Exception hierarchy for the agent orchestration runtime.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed. Only OrchestrationError (and its
TransportError subclass) is meant to escape a turn; the rest are absorbed
into tool results or soft-failure return values.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class RepositoryError(DomainError):
    """Raised when a database operation fails."""


class OrchestrationError(DomainError):
    """Raised when a turn cannot be completed and the caller must be told."""


class TransportError(OrchestrationError):
    """Raised when the language-model provider (or the store) is unreachable."""


class ToolNotFoundError(DomainError):
    """Raised when a tool name is not registered in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.name = name


class ToolAlreadyRegisteredError(DomainError):
    """Raised when a second tool is registered under an existing name."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class ArgumentDecodeError(DomainError):
    """Raised when a streamed tool-argument payload is not a JSON object.

    Carries the tool name and the raw buffer so the failure can be reported
    back to the model for just that invocation.
    """

    def __init__(self, tool_name: str, raw_arguments: str, reason: str = ""):
        message = f"Could not decode arguments for tool '{tool_name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments


class ToolExecutionError(DomainError):
    """Raised by a tool when it cannot fulfil a request."""


class MemoryUnavailableError(DomainError):
    """Raised when the embedding capability is missing or failing."""
