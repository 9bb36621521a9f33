"""
Exception classes for helm-git.

Messages end up in helm and CI logs: URLs are shown with their credentials
redacted, the attributes keep them as given.
"""

from helm_git.utils import redact_url


class HelmGitError(Exception):
    """Base exception for all helm-git errors."""

    pass


class InvalidURIFormatError(HelmGitError):
    """Raised when a URI does not follow the git+<transport>:// format."""

    def __init__(self, uri: str, reason: str = ""):
        self.uri = uri
        message = f"Invalid format, got '{redact_url(uri)}'."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class DisallowedProtocolError(HelmGitError):
    """Raised when the transport of a URI is not allowed."""

    def __init__(self, protocol: str, allowed):
        self.protocol = protocol
        self.allowed = tuple(allowed)
        super().__init__(
            f"Protocol '{protocol}' not allowed, it should match one of these: "
            f"{' '.join(self.allowed)}."
        )


class RemoteUnreachableError(HelmGitError):
    """Raised when fetching from a remote repository fails."""

    def __init__(self, url: str, ref: str):
        self.url = url
        self.ref = ref
        super().__init__(
            f"Unable to fetch ref '{ref}' from remote '{redact_url(url)}'. "
            "Check your Git url."
        )


class RefNotFoundError(HelmGitError):
    """Raised when a fetched ref cannot be checked out."""

    def __init__(self, ref: str, path: str):
        self.ref = ref
        self.path = path
        super().__init__(
            f"Unable to checkout ref. Check your Git ref ({ref}) and path ({path})."
        )


class EmptyCheckoutError(HelmGitError):
    """Raised when a checkout leaves no files in the working tree."""

    def __init__(self, ref: str, path: str):
        self.ref = ref
        self.path = path
        super().__init__(
            "No files have been checked out. "
            f"Check your Git ref ({ref}) and path ({path})."
        )


class NoChartsFoundError(HelmGitError):
    """Raised when no Chart.yaml is found under the search root."""

    def __init__(self, search_root: str):
        self.search_root = search_root
        super().__init__(f"No charts have been found in '{search_root}'")


class ToolFailureError(HelmGitError):
    """Raised when a helm invocation fails.

    ``step`` is one of ``inspect``, ``dependency``, ``package`` or ``index``.
    Only the last line of ``details`` makes it into the message.
    """

    def __init__(self, step: str, path: str, details: str = ""):
        self.step = step
        self.path = path
        self.details = details
        message = f"Error while helm {step} on '{path}'"
        lines = [line.strip() for line in details.splitlines() if line.strip()]
        if lines:
            message = f"{message}: {lines[-1]}"
        super().__init__(message)


class ArtifactNotFoundError(HelmGitError):
    """Raised when the requested file was not produced by the pipeline."""

    def __init__(self, file_name: str, uri: str):
        self.file_name = file_name
        self.uri = uri
        super().__init__(
            f"File '{file_name}' was not produced for '{redact_url(uri)}'"
        )
