"""Domain errors.

Services raise these; ``create_app`` maps each class to an HTTP status and
a short ``status`` code in the JSON body.
"""


class GalleryError(Exception):
    """Base exception for gallery operations."""
    status_code = 500
    code = "error"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class Unauthorized(GalleryError):
    """No session, or the session has no usable identity."""
    status_code = 401
    code = "unauthorized"


class AccessDenied(GalleryError):
    """Authenticated, but without rights on the requested resource."""
    status_code = 403
    code = "access_denied"


class NotFound(GalleryError):
    """Folder, user or group id does not resolve. Nothing was written."""
    status_code = 404
    code = "not_found"


class Conflict(GalleryError):
    status_code = 409
    code = "conflict"


class InvalidInput(GalleryError):
    status_code = 400
    code = "invalid_input"


class InvalidPath(GalleryError):
    """Path traversal or a path escaping the storage root."""
    status_code = 400
    code = "invalid_path"


class StorageUnavailable(GalleryError):
    """Storage root is missing or unreadable."""
    status_code = 503
    code = "storage_unavailable"
