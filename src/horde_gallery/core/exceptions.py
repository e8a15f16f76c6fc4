"""Custom exceptions for horde-gallery."""

from __future__ import annotations


class HordeGalleryError(Exception):
    """Base exception for horde-gallery."""


class RemoteServiceError(HordeGalleryError):
    """A call to the gallery server failed (network error or error response)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BulkDeleteError(HordeGalleryError):
    """A delete-all run stopped part way through.

    Requests deleted before the failure stay deleted; ``deleted_ids`` lists
    them and ``failed_id`` names the request whose delete call failed.
    """

    def __init__(self, failed_id: str, deleted_ids: list[str]) -> None:
        super().__init__(
            f"Failed to delete request {failed_id} "
            f"after deleting {len(deleted_ids)} request(s)"
        )
        self.failed_id = failed_id
        self.deleted_ids = deleted_ids
