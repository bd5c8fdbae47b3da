"""
Error taxonomy for the Lead Engine.

Pure components (scoring, analytics) never raise these for well-typed input;
I/O components (repositories, provisioning) classify failures into them.
"""

from typing import List, Optional


class LeadEngineError(Exception):
    """Base class for engine errors."""


class ValidationError(LeadEngineError):
    """Input rejected; recoverable by correcting the input. Nothing was written."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class NotFoundError(LeadEngineError):
    """Lookup by id failed."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class PersistenceError(LeadEngineError):
    """The tabular store was unreachable or rejected an operation."""

    def __init__(self, operation: str, table: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.table = table
        self.cause = cause
        message = f"Store {operation} on '{table}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ProvisioningError(LeadEngineError):
    """Client or project creation failed mid-pipeline."""

    def __init__(self, step: str, lead_id: str, cause: Optional[BaseException] = None):
        self.step = step
        self.lead_id = lead_id
        self.cause = cause
        message = f"Provisioning step '{step}' failed for lead {lead_id}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
