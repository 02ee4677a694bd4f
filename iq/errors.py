from typing import Optional


class IQServerError(Exception):
    """
    Base error for everything that can go wrong while auditing against IQ Server.

    `message` is the human readable summary, `err` the underlying cause (if any).
    """

    def __init__(self, message: str, err: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.err = err

    def __str__(self) -> str:
        if self.err is not None:
            return f"An error occurred: {self.message}, err: {self.err}"
        return f"An error occurred: {self.message}"


class ConfigurationError(IQServerError):
    """A required option is missing. Raised before any network call."""


class MissingLicenseError(IQServerError):
    def __init__(self) -> None:
        super().__init__("error accessing nexus iq server: No valid product license installed")

    def __str__(self) -> str:
        return self.message


class ApplicationNotFoundError(IQServerError):
    def __init__(self, application: str) -> None:
        super().__init__(
            f"Unable to retrieve an internal ID for the specified public application ID: {application}"
        )
        self.application = application


class ServerCommunicationError(IQServerError):
    def __init__(
            self,
            message: str,
            *,
            status_code: Optional[int] = None,
            status: Optional[str] = None,
            body: Optional[str] = None,
            err: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, err)
        self.status_code = status_code
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base}, status code: {self.status_code}, status: {self.status}, body: {self.body}"


class EmptyHandleError(IQServerError):
    """Submission was accepted but no statusUrl came back to poll."""


class MaxRetriesExceededError(IQServerError):
    def __init__(self, max_retries: int) -> None:
        super().__init__("exceeded max retries", RuntimeError(f"exceeded max retries: {max_retries}"))
        self.max_retries = max_retries


class ParseError(IQServerError):
    def __init__(self, message: str, body: Optional[str] = None, err: Optional[BaseException] = None) -> None:
        super().__init__(message, err)
        self.body = body


class AuditCancelledError(IQServerError):
    def __init__(self) -> None:
        super().__init__("audit was cancelled before IQ Server finished evaluating it")
