"""Structured error hierarchy for the agent engine."""

from __future__ import annotations

from typing import Any


class WeftError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    @classmethod
    def wrap(cls, err: Exception) -> WeftError:
        if isinstance(err, WeftError):
            return err
        return WeftError("UNKNOWN", str(err), err)


# -- LLM --


class LLMError(WeftError):
    def __init__(
        self,
        code: str,
        provider: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code, message, cause)
        self.provider = provider
        self.status_code = status_code


class LLMRateLimitError(LLMError):
    def __init__(self, provider: str, retry_after_ms: int | None = None) -> None:
        super().__init__("LLM_RATE_LIMIT", provider, f"Rate limited by {provider}", 429)
        self.retry_after_ms = retry_after_ms


class LLMAuthError(LLMError):
    def __init__(self, provider: str) -> None:
        super().__init__("LLM_AUTH_ERROR", provider, f"Auth failed for {provider}", 401)


class StructuredOutputError(WeftError):
    def __init__(self, message: str, raw: str, cause: Exception | None = None) -> None:
        super().__init__("STRUCTURED_OUTPUT", message, cause)
        self.raw = raw


# -- Tools --


class ToolRegistryError(WeftError, ValueError):
    def __init__(self, message: str) -> None:
        super().__init__("TOOL_REGISTRY", message)


class ToolException(WeftError):
    """Raised by a tool to reject its arguments or preconditions.

    The message is returned to the LLM verbatim so it can correct the call.
    """

    def __init__(self, message: str) -> None:
        super().__init__("TOOL_VALIDATION", message)


# -- Graph --


class GraphError(WeftError, RuntimeError):
    pass


class GraphValidationError(GraphError):
    def __init__(self, message: str) -> None:
        super().__init__("GRAPH_VALIDATION", message)


class AgentStuckInNodeError(GraphError):
    def __init__(self, node_name: str, output: Any) -> None:
        super().__init__(
            "AGENT_STUCK",
            f'Agent stuck in node "{node_name}": no edge matched output {output!r}',
        )
        self.node_name = node_name
        self.output = output


class MaxIterationsReachedError(GraphError):
    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            "MAX_ITERATIONS", f"Agent reached max iterations ({max_iterations})"
        )
        self.max_iterations = max_iterations


# -- Sessions / agent --


class SessionClosedError(WeftError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("SESSION_CLOSED", "Cannot use session after it was closed")


class AgentAlreadyRunningError(WeftError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("AGENT_ALREADY_RUNNING", "Agent is already running")


class TerminationError(WeftError, RuntimeError):
    def __init__(self, message: str) -> None:
        super().__init__("TERMINATION_PRECONDITION", message)


class AgentEngineError(WeftError):
    pass


class UnexpectedMessageTypeError(AgentEngineError):
    def __init__(self, message: str) -> None:
        super().__init__("UNEXPECTED_MESSAGE_TYPE", message)


class MalformedMessageError(AgentEngineError):
    def __init__(self, message: str) -> None:
        super().__init__("MALFORMED_MESSAGE", message)


class AgentNotFoundError(AgentEngineError):
    def __init__(self, message: str) -> None:
        super().__init__("AGENT_NOT_FOUND", message)


class UnexpectedServerError(AgentEngineError):
    def __init__(self, message: str) -> None:
        super().__init__("UNEXPECTED_ERROR", message)
