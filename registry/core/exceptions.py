"""Registry exceptions for session, reconciliation and authorization errors."""


class RegistryError(Exception):
    """Base exception for all registry operations.

    Attributes:
        status_code: HTTP status the API layer reports for this error
    """

    status_code = 500
    error = "Internal Server Error"


class NotAuthenticated(RegistryError):
    """No claims or stored session identity are present."""

    status_code = 401
    error = "Unauthorized"


class InvalidPrincipal(RegistryError):
    """A required claim is missing from the authenticated principal.

    Attributes:
        claim: Name of the missing claim
    """

    status_code = 401
    error = "Unauthorized"

    def __init__(self, claim: str):
        self.claim = claim
        super().__init__(f"Required claim '{claim}' missing from principal")


class SessionUnavailable(RegistryError):
    """The transport session store cannot be used; caller must re-authenticate."""

    status_code = 401
    error = "Unauthorized"


class AccessDenied(RegistryError):
    """The current user lacks the role required for a project operation."""

    status_code = 403
    error = "Forbidden"


class ProjectNotFound(RegistryError):
    """Project lookup failed.

    Attributes:
        project_id: Local project id that was requested
    """

    status_code = 404
    error = "Not Found"

    def __init__(self, project_id, message: str | None = None):
        self.project_id = project_id
        super().__init__(message or f"Project {project_id} not found")


class ProjectNotInDirectory(ProjectNotFound):
    """Project exists locally but the directory has no group for its SCIM id."""

    def __init__(self, project_id, scim_id):
        self.scim_id = scim_id
        super().__init__(project_id, f"Project {project_id} has no directory group (scim_id={scim_id})")


class GroupNotFound(RegistryError):
    """Directory has no group for the requested id or URN.

    Attributes:
        reference: Group SCIM id or URN that failed to resolve
    """

    status_code = 404
    error = "Not Found"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Group {reference} not found in directory")
