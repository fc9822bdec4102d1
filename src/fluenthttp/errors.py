"""Exception types raised or reported by the client."""


class HttpClientError(Exception):
    """Base class for client errors."""


class ConfigurationError(HttpClientError, ValueError):
    """The request configuration cannot be executed."""


class ExecutionFailedError(HttpClientError):
    """Execution finished without producing a response."""


class ValidationErrors(HttpClientError):
    """Several configuration errors reported together."""

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))

    def __str__(self) -> str:
        lines = [f"{len(self.errors)} configuration error(s)"]
        lines.extend(f"  {e}" for e in self.errors)
        return "\n".join(lines)
