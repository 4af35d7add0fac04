"""Exceptions raised by the canvas engine and its remote store adapters."""


class CanvasError(Exception):
    """Base class for canvas errors."""
    pass


class NotFoundError(CanvasError):
    """The requested workflow, folder or run does not exist for this user."""
    pass


class AuthRequiredError(CanvasError):
    """The remote store rejected the call because no user is signed in."""
    pass


class RemoteStoreError(CanvasError):
    """The remote store could not be reached or failed the request.

    Treated as transient: the caller keeps its local state and may retry.
    """
    pass


class WorkflowImportError(CanvasError):
    """An imported workflow file is malformed."""
    pass
