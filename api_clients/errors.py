from typing import Any, Optional


class ServiceError(Exception):
    """Raised when a call to an external collaborator fails."""

    service = "service"

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.service} error {self.status_code}: {self.args[0]}"
        return f"{self.service} error: {self.args[0]}"


class ProviderError(ServiceError):
    service = "SendGrid"


class SchedulerError(ServiceError):
    service = "Scheduler"
