__all__ = ["ForecastOpsError", "ConfigurationError", "TaskError", "TaskOutputError"]


class ForecastOpsError(RuntimeError):
    """Raised when a step of the operational pipeline cannot complete."""


class ConfigurationError(ValueError):
    """Raised for bad arguments, identifiers, manifests or configuration files."""


class TaskError(ForecastOpsError):
    """An external tool could not be started, exited non-zero or timed out."""

    def __init__(self, task_name, message, returncode=None, retryable=True):
        super().__init__(f"[{task_name}] {message}")
        self.task_name  = task_name
        self.returncode = returncode
        self.retryable  = retryable


class TaskOutputError(TaskError):
    """An external tool exited cleanly but did not write what it promised."""
