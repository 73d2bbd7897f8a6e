"""Errors raised by the GitHub client and local workflow discovery.

Everything here derives from CIError so the task executor can report
failures uniformly. HTTP failures carry the response status.
"""

DISPATCH_HINT = "hint: workflow file must exist on the default branch to be dispatched"


class CIError(Exception):
    """Root of every error cidash raises itself."""


class CIAPIError(CIError):
    """GitHub answered with an error status or could not be reached."""

    default_status: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = self.default_status if status_code is None else status_code


class CINotFoundError(CIAPIError):
    """Repository, run, job or workflow does not exist."""

    default_status = 404


class CIAuthenticationError(CIAPIError):
    """Token missing, expired or lacking the required scope."""

    default_status = 401


class WorkflowNotDispatchableError(CIAPIError):
    """workflow_dispatch rejected; the message ends with DISPATCH_HINT."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(f"{message}\n{DISPATCH_HINT}", status_code=status_code)


class NoLocalWorkflowsError(CIError):
    """The checkout has no *.yml or *.yaml files under .github/workflows."""
