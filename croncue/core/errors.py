"""
croncue exception hierarchy.

Every error in the system inherits from CronCueError.
Each concern has its own error class for targeted catching.

Usage:
    try:
        store.create(name="standup", schedule="0 9 * * 1-5", prompt="remind")
    except DuplicateJobError as e:
        # The explicit id is already taken
    except ValidationError as e:
        # Any rejected input
    except CronCueError as e:
        # Handle any croncue error
"""


class CronCueError(Exception):
    """Base exception for all croncue errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Configuration & storage ━━━


class ConfigError(CronCueError):
    """Configuration is invalid, missing, or malformed."""

    pass


class StorageError(CronCueError):
    """A job or trigger file could not be written or removed."""

    def __init__(self, message: str, path: str = "", details: dict | None = None):
        self.path = path
        super().__init__(message, details)


# ━━━ Validation (raised synchronously to the caller) ━━━


class ValidationError(CronCueError):
    """Caller supplied input that violates a precondition."""

    pass


class DuplicateJobError(ValidationError):
    """An explicit job id was supplied that already exists."""

    def __init__(self, job_id: str, details: dict | None = None):
        self.job_id = job_id
        super().__init__(f"Job {job_id!r} already exists", details)


class InvalidScheduleError(ValidationError):
    """A cron expression could not be parsed."""

    def __init__(self, expression: str, details: dict | None = None):
        self.expression = expression
        super().__init__(f"Invalid cron expression: {expression!r}", details)


# ━━━ Delivery (reported through the watcher's error callback) ━━━


class DeliveryError(CronCueError):
    """A trigger could not be delivered. The trigger file is retained."""

    def __init__(self, message: str, filename: str = "", details: dict | None = None):
        self.filename = filename
        super().__init__(message, details)


class TriggerParseError(DeliveryError):
    """A trigger file is empty or not a valid trigger record."""

    pass


class TargetResolutionError(DeliveryError):
    """Trigger has no target and no default target is configured."""

    pass
