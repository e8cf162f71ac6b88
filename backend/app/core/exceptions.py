class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class StoreUnavailableError(AppError):
    """Raised when the schedule store cannot be reached or timed out."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)

class ScheduleFetchError(StoreUnavailableError):
    """Raised when one source of the effective schedule could not be read.

    The resolver never answers with a partial view, so a missing override
    read surfaces here instead of silently showing the base plan.
    """
    def __init__(self, source: str, date_str: str, day_name: str):
        super().__init__(
            f"Could not load {source} for {day_name} {date_str}; the schedule view is incomplete",
            details={"source": source, "dateStr": date_str, "dayName": day_name},
        )

class ScheduleValidationError(AppError):
    """Raised when a write or workflow action is rejected before touching the store."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)
