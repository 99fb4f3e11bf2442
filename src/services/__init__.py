"""Services module exports."""

from .application_service import ApplicationService
from .auth_service import AdminAuthorizer

__all__ = ["ApplicationService", "AdminAuthorizer"]
