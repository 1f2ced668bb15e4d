"""Exception taxonomy for the inventory API."""

from typing import Optional

from fastapi import status


class InventoryAPIError(Exception):
    """Base exception for the inventory API."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class Unauthenticated(InventoryAPIError):
    """No usable session credential; the caller has to log in again."""

    status_code = status.HTTP_401_UNAUTHORIZED


class MissingCredentials(Unauthenticated):
    def __init__(self, message: str = "Access token required"):
        super().__init__(message)


class InvalidCredentials(Unauthenticated):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class PermissionDenied(InventoryAPIError):
    """Authenticated, but the required module/action/resource is not granted."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, module: str, action: str, resource: Optional[str] = None):
        self.module = module
        self.action = action
        self.resource = resource
        super().__init__("Access denied. Insufficient permissions.")

    @property
    def required_permission(self) -> dict:
        return {"module": self.module, "action": self.action, "resource": self.resource}


class PermissionCheckFailed(InventoryAPIError):
    """The permission check could not be completed; the request is denied."""

    def __init__(self, message: str = "Error checking permissions"):
        super().__init__(message)


class PermissionResolutionError(InventoryAPIError):
    """The permission store could not be read (database error or timeout)."""


class NotFoundError(InventoryAPIError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(InventoryAPIError):
    status_code = status.HTTP_409_CONFLICT


class BusinessRuleError(InventoryAPIError):
    status_code = status.HTTP_400_BAD_REQUEST


class SystemRoleProtectedError(InventoryAPIError):
    status_code = status.HTTP_403_FORBIDDEN
