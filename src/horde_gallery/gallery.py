"""Local image list and the refresh action that keeps it current."""

from __future__ import annotations

from typing import TYPE_CHECKING

from horde_gallery.core.logging import get_logger
from horde_gallery.core.types import ImageFilters

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from horde_gallery.api.interfaces import ImageSource
    from horde_gallery.api.schemas import GalleryImage
    from horde_gallery.throttle import ThrottleGate

logger = get_logger(__name__)


class Gallery:
    """Images currently shown, newest first."""

    def __init__(self, filters: ImageFilters | None = None) -> None:
        self.filters = filters or ImageFilters()
        self.images: list[GalleryImage] = []
        self.total: int | None = None

    @property
    def known_ids(self) -> set[str]:
        return {image.id for image in self.images}

    def prepend(self, images: Iterable[GalleryImage]) -> list[GalleryImage]:
        """Put images not already shown in front of the list.

        Returns:
            The images that were actually added, in their original order
        """
        known = self.known_ids
        added: list[GalleryImage] = []
        for image in images:
            if image.id in known:
                continue
            known.add(image.id)
            added.append(image)
        if added:
            self.images = added + self.images
        return added

    def __len__(self) -> int:
        return len(self.images)


class ImageRefresher:
    """Refresh action: pull the newest page and prepend unseen images.

    Refreshing is skipped while a single request is being viewed or a text
    search is active; new images would not belong to either view. Errors
    propagate to the caller.

    Args:
        source: Where images are fetched from
        gallery: The gallery to update
        page_size: How many of the newest images to fetch per refresh
        throttle: Gate to pass before each fetch, if any
        on_new_images: Called with the new images after each refresh that found some
    """

    DEFAULT_PAGE_SIZE = 20

    def __init__(
        self,
        source: ImageSource,
        gallery: Gallery,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        throttle: ThrottleGate | None = None,
        on_new_images: Callable[[list[GalleryImage]], None] | None = None,
    ) -> None:
        self._source = source
        self._gallery = gallery
        self._page_size = page_size
        self._throttle = throttle
        self._on_new_images = on_new_images

    async def __call__(self) -> list[GalleryImage]:
        return await self.check_new_images()

    async def check_new_images(self) -> list[GalleryImage]:
        """Fetch the newest images and add the ones not shown yet.

        Returns:
            The images added to the gallery (empty when skipped)
        """
        filters = self._gallery.filters
        if filters.is_narrowed:
            return []

        if self._throttle is not None:
            await self._throttle.acquire()
        page = await self._source.list_images(self._page_size, 0, filters)

        if page.total is not None:
            self._gallery.total = page.total
        if not page.data:
            return []

        added = self._gallery.prepend(page.data)
        if added:
            logger.info("Added %d new image(s) to library", len(added))
            if self._on_new_images is not None:
                self._on_new_images(added)
        return added
