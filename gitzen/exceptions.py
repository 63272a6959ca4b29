"""gitzen exception classes."""


class GitzenError(Exception):
    """Base exception for all gitzen errors."""

    status_code = 500

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(GitzenError):
    """Raised when application configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class AuthenticationError(GitzenError):
    """Raised when a credential is missing, invalid or expired."""

    status_code = 401


class AuthorizationError(GitzenError):
    """Raised when an authenticated caller lacks a permission, repo or auth method."""

    status_code = 403


class NotFoundError(GitzenError):
    """Raised when a resource is not found (or belongs to someone else)."""

    status_code = 404


class ConflictError(GitzenError):
    """Raised on conflicts (stale file SHA, merge conflicts, existing branch)."""

    status_code = 409


class ValidationError(GitzenError):
    """Raised on malformed input, before any remote call is made."""

    status_code = 400


class ServerError(GitzenError):
    """Raised on unexpected server-side failures."""

    pass


class DecryptionError(GitzenError):
    """Raised when an encrypted value cannot be decrypted.

    The message never carries detail about why decryption failed.
    """

    status_code = 401

    def __init__(self) -> None:
        super().__init__("DECRYPTION_FAILED", "Invalid encrypted value")


class RemoteApiError(GitzenError):
    """Raised when the remote Git host answers with a non-2xx status.

    ``body`` and ``path`` are kept for internal logging only; the message
    names the status and nothing else.
    """

    def __init__(self, status: int, body: str, path: str) -> None:
        super().__init__(
            "REMOTE_API_ERROR", f"Remote host request failed (HTTP {status})"
        )
        self.status = status
        self.body = body
        self.path = path

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.status in (403, 404, 409):
            return self.status
        return 502

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
