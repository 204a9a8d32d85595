"""Domain-specific exceptions: framework-independent."""


class TagLifecycleError(Exception):
    """Base class for every error raised by the tag lifecycle core."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class TagNotFoundError(TagLifecycleError):
    """Raised when no record exists for a code."""

    def __init__(self, code: str):
        super().__init__(code, f"Tag with code '{code}' not found")


class AlreadyActivatedError(TagLifecycleError):
    """Raised when a different identity tries to activate an activated tag."""

    def __init__(self, code: str):
        super().__init__(code, f"Tag '{code}' is already activated")


class AlreadyFoundError(TagLifecycleError):
    """Raised when a tag that is already marked found is reported again."""

    def __init__(self, code: str):
        super().__init__(code, f"Tag '{code}' is already marked as found")


class NotActivatedError(TagLifecycleError):
    """Raised when a tag is scanned before it has been activated."""

    def __init__(self, code: str):
        super().__init__(code, f"Tag '{code}' is not activated yet")


class InvalidStatusTransitionError(TagLifecycleError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, code: str, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            code, f"Tag '{code}' cannot move from '{current}' to '{requested}'"
        )


class InvalidOrExpiredOTPError(TagLifecycleError):
    """Raised when a contact-update OTP is missing, wrong or expired."""

    def __init__(self, code: str):
        super().__init__(code, f"Invalid or expired verification code for tag '{code}'")


class UniqueConstraintViolationError(TagLifecycleError):
    """Raised by the record store when a unique key already exists.

    Transient for code issuance: the caller regenerates and retries.
    """

    def __init__(self, code: str, field: str = "code"):
        self.field = field
        super().__init__(code, f"Tag with {field}='{code}' already exists")


class StoreTimeoutError(TagLifecycleError):
    """Raised when a record store call does not finish within its deadline."""

    def __init__(self, code: str, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            code, f"Record store '{operation}' for '{code}' timed out after {timeout:.1f}s"
        )


class PatchConflictError(TagLifecycleError):
    """Raised by the record store when a patch precondition no longer holds.

    The record changed between the caller's read and its write; nothing was
    written.
    """

    def __init__(self, code: str, field: str, actual: object):
        self.field = field
        self.actual = actual
        super().__init__(
            code, f"Tag '{code}' changed concurrently ({field}={actual!r}), update rejected"
        )
