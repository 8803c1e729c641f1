"""Domain errors for the GitOps updater."""

from typing import Optional


class GitopsError(RuntimeError):
    """Raised when the deployment update cannot continue."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step


class ConfigurationError(GitopsError):
    """The update request is incomplete or inconsistent."""


class WorkspaceError(GitopsError):
    """The scratch workspace could not be created."""


class CloneError(GitopsError):
    pass


class BranchError(GitopsError):
    pass


class RepositoryNotClonedError(GitopsError):
    """A repository operation was called before a successful clone."""


class UnsupportedToolError(GitopsError):
    pass


class ImageReferenceError(GitopsError):
    """A container image reference or registry URL is malformed."""


class ExternalToolError(GitopsError):
    """kubectl or helm could not be launched or exited with an error."""


class FileWriteError(GitopsError):
    pass


class CommitError(GitopsError):
    pass


class PushError(GitopsError):
    pass


def describe_error(exc: BaseException) -> str:
    """Render an exception and its cause chain on a single line."""
    parts = []
    step = getattr(exc, "step", None)
    if step:
        parts.append(step)

    current: Optional[BaseException] = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        message = str(current).strip() or current.__class__.__name__
        parts.append(message)
        current = current.__cause__

    return ": ".join(parts)
