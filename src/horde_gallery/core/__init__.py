"""Core utilities for horde-gallery."""

from horde_gallery.core.config import Settings, settings
from horde_gallery.core.exceptions import (
    BulkDeleteError,
    HordeGalleryError,
    RemoteServiceError,
)
from horde_gallery.core.types import DeleteMode, ImageFilters, RequestStatus

__all__ = [
    "BulkDeleteError",
    "DeleteMode",
    "HordeGalleryError",
    "ImageFilters",
    "RemoteServiceError",
    "RequestStatus",
    "Settings",
    "settings",
]
