"""
Workflow Errors
Stable error kinds surfaced by the reservation workflow
"""


class WorkflowError(Exception):
    """Base class for every error the workflow reports to callers"""

    kind = "WORKFLOW_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(WorkflowError):
    kind = "NOT_FOUND"
    status_code = 404


class InvalidTransition(WorkflowError):
    kind = "INVALID_TRANSITION"
    status_code = 409


class RegionMismatch(WorkflowError):
    kind = "REGION_MISMATCH"
    status_code = 403


class InvalidHotel(WorkflowError):
    kind = "INVALID_HOTEL"
    status_code = 400


class DuplicateNumber(WorkflowError):
    kind = "DUPLICATE_NUMBER"
    status_code = 409


class DocumentStoreFailure(WorkflowError):
    kind = "DOCUMENT_STORE_FAILURE"
    status_code = 503


class MissingFinanceData(WorkflowError):
    kind = "MISSING_FINANCE_DATA"
    status_code = 400


class NoDocumentGenerated(WorkflowError):
    kind = "NO_DOCUMENT_GENERATED"
    status_code = 404
