"""Shared type definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RequestStatus(str, Enum):
    """Status of a generation request."""

    PENDING = "pending"  # Queued locally, not yet sent to the Horde
    SUBMITTING = "submitting"  # Being submitted
    PROCESSING = "processing"  # Horde workers are generating
    DOWNLOADING = "downloading"  # Images being fetched into the gallery
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        """True for statuses a request never leaves."""
        return self in (RequestStatus.COMPLETED, RequestStatus.FAILED)

    @property
    def is_processing(self) -> bool:
        """True while the server is working on the request."""
        return self in (
            RequestStatus.SUBMITTING,
            RequestStatus.PROCESSING,
            RequestStatus.DOWNLOADING,
        )


class DeleteMode(str, Enum):
    """What happens to a request's images when the request is deleted."""

    DELETE = "delete"  # Remove the images as well
    PRUNE = "prune"  # Keep the images in the gallery


@dataclass
class ImageFilters:
    """View context of the gallery.

    Attributes:
        request_id: Set when a single request's images are being viewed
        keywords: Active text search terms
        favorites: Only show favorited images
        hidden: Show hidden images
    """

    request_id: str | None = None
    keywords: list[str] = field(default_factory=list)
    favorites: bool = False
    hidden: bool = False

    @property
    def is_narrowed(self) -> bool:
        """True when the view shows a single request or search results."""
        return bool(self.request_id) or len(self.keywords) > 0
