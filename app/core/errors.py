"""
Error taxonomy shared by the document store, the progression engine and the routes.

Each error carries the HTTP status it maps to; app.main registers one handler for
the whole family so services can raise them without importing FastAPI.
"""


class WorkshopError(Exception):
    status_code = 500
    default_detail = "Workshop operation failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(WorkshopError):
    """Workshop or step missing, or hidden from the caller."""
    status_code = 404
    default_detail = "Workshop not found"


class PermissionDenied(WorkshopError):
    status_code = 403
    default_detail = "You don't have permission to access this workshop"


class TransportFailure(WorkshopError):
    """Network or database error on a single read or write. Never retried."""
    status_code = 502
    default_detail = "Document store request failed"


class StepNotEditable(WorkshopError):
    status_code = 409
    default_detail = "This step cannot be changed"


class OperationInProgress(WorkshopError):
    status_code = 409
    default_detail = "Another save is still in progress"


class InvalidOperation(WorkshopError):
    status_code = 400
    default_detail = "Invalid operation"
