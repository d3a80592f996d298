"""Errors raised while driving a canary through its lifecycle."""


class CanaryRunnerError(RuntimeError):
    """Base class for every failure the canary runner reports."""


class CommandFailedError(CanaryRunnerError):
    """A Synthetics call answered with a non-success HTTP status."""

    def __init__(self, operation, status_code, canary_name=None):
        self.operation = operation
        self.status_code = status_code
        self.canary_name = canary_name
        target = f" for canary {canary_name}" if canary_name else ""
        super().__init__(f"{status_code} Failed to send command {operation}{target}")


class MissingValueError(CanaryRunnerError):
    """A response did not contain a value the runner depends on."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Value was missing: {name}")


class PollingTimeoutError(CanaryRunnerError):
    """A poll loop ran out of attempts or time without seeing the awaited state."""

    def __init__(self, description, attempts):
        self.description = description
        self.attempts = attempts
        super().__init__(f"Gave up waiting for {description} after {attempts} attempts")
