"""Gallery server API: HTTP client, payload schemas, and the interfaces the core consumes."""

from horde_gallery.api.client import GalleryApiClient
from horde_gallery.api.schemas import (
    GalleryImage,
    GenerationRequest,
    ImagePage,
    KudosEstimate,
    QueueStatus,
    RetryResponse,
)

__all__ = [
    "GalleryApiClient",
    "GalleryImage",
    "GenerationRequest",
    "ImagePage",
    "KudosEstimate",
    "QueueStatus",
    "RetryResponse",
]
