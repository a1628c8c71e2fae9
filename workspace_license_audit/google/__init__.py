"""Google Workspace API backends — directory, licensing, sheets."""

from .client import GoogleAPIClient, GoogleAPIError
from .directory import DirectoryUsersService
from .licensing import LicenseAssignmentService
from .sheets import SheetsSink

__all__ = [
    "GoogleAPIClient",
    "GoogleAPIError",
    "DirectoryUsersService",
    "LicenseAssignmentService",
    "SheetsSink",
]
