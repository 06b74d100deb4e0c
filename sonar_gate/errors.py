class SonarGateError(Exception):
    """Base class for every error raised by sonar-gate."""


class ConfigError(SonarGateError):
    pass


class NotFoundError(SonarGateError, FileNotFoundError):
    def __init__(self, path: str) -> None:
        super().__init__(f"No file found at {path}")
        self.path = path


class ServiceError(SonarGateError):
    def __init__(self, http_status: int, body: str) -> None:
        super().__init__(f"HTTP error {http_status}: {body}")
        self.http_status = http_status
        self.body = body


class GateTimeoutError(SonarGateError, TimeoutError):
    def __init__(self, budget_seconds: float) -> None:
        super().__init__(
            f"Quality gate did not finish within {budget_seconds:g} seconds. "
            "Increase the gate timeout if necessary"
        )
        self.budget_seconds = budget_seconds


class GateFailure(SonarGateError):
    """The gate did not pass. ``fatal`` is False when only a warning is wanted."""

    def __init__(self, message: str, status: str, fatal: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.fatal = fatal
