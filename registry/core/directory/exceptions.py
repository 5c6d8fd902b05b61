"""Directory-specific exceptions for error handling."""


class DirectoryError(Exception):
    """Base exception for all SCIM directory operations."""
    pass


class DirectoryAPIError(DirectoryError):
    """HTTP error from the SCIM directory API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class DirectoryUnavailableError(DirectoryError):
    """Directory could not be reached (connection failure or timeout).

    Attributes:
        endpoint: API endpoint that failed
    """

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class MalformedResourceError(DirectoryError):
    """Directory returned a resource that is missing required attributes."""
    pass
