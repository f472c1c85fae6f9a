"""PageLayoutEngine: distributes piano score pages over printed pages."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from songbook_updater.config import SongbookConfig
from songbook_updater.errors import LayoutError
from songbook_updater.song_models import Chapter, PageGroup, Song

logger = logging.getLogger(__name__)


class PageLayoutEngine:
    """
    Groups songs into :class:`PageGroup` objects for the printed piano score.

    The score is printed in landscape, two piano pages per sheet side, so a
    page spread shows ``page_capacity`` images. The very first page of the
    book shows only ``first_page_capacity`` images.

    Algorithm overview
    ------------------
    Unoptimized
        Songs keep their order; every song forms its own group sized to its
        image count. Nothing is regrouped and no placeholders are added.

    Page-turn optimized
        1. **Bucketing**: songs are put into count buckets ``1 .. max_piano_pages``,
           keeping their order inside a bucket.
        2. **Filling**: a page starts with its full capacity as the remaining
           room ``r``. The buckets are scanned from the largest count down to
           1 and the first song of the first non-empty bucket with count
           ``<= r`` is placed; ``r`` shrinks by that count and the scan
           repeats until no bucket fits.
        3. **Placeholders**: the room left on the page becomes blank-page
           placeholders.
        4. Steps 2-3 repeat until all buckets are empty.

    A song is never split across two pages. This greedy largest-fit-first
    packing is deterministic and not globally optimal.

    With alphabetical grouping every bucket letter is paginated on its own.
    Every chapter starts with a reduced first page; with
    ``restart_first_page_per_chapter=False`` only the first page of the
    whole book gets the reduced capacity.
    """

    def __init__(
        self,
        first_page_capacity: int = 2,
        page_capacity: int = 4,
        max_piano_pages: int = 4,
        restart_first_page_per_chapter: bool = True,
    ) -> None:
        if first_page_capacity < 1 or page_capacity < 1:
            raise LayoutError("Page capacities must be positive.")
        if not 1 <= max_piano_pages <= page_capacity:
            raise LayoutError(
                f"max_piano_pages ({max_piano_pages}) must be between 1 and page_capacity ({page_capacity})."
            )
        self.first_page_capacity = first_page_capacity
        self.page_capacity = page_capacity
        self.max_piano_pages = max_piano_pages
        self.restart_first_page_per_chapter = restart_first_page_per_chapter

    @classmethod
    def from_config(cls, config: SongbookConfig) -> PageLayoutEngine:
        return cls(
            first_page_capacity=config.first_page_capacity,
            page_capacity=config.page_capacity,
            max_piano_pages=config.max_piano_pages,
            restart_first_page_per_chapter=config.restart_first_page_per_chapter,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _bucket_by_count(self, songs: Iterable[Song]) -> dict[int, deque[Song]]:
        buckets: dict[int, deque[Song]] = {count: deque() for count in range(1, self.max_piano_pages + 1)}
        for song in songs:
            buckets[song.piano_count].append(song)
        return buckets

    def _fill_page(self, buckets: dict[int, deque[Song]], capacity: int) -> PageGroup:
        group = PageGroup(capacity=capacity)
        while True:
            fitting = next(
                (count for count in range(min(group.remaining, self.max_piano_pages), 0, -1) if buckets[count]),
                None,
            )
            if fitting is None:
                return group
            group.add(buckets[fitting].popleft())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, songs: Iterable[Song]) -> None:
        """
        Raises:
            LayoutError: If a song has no piano images or more than allowed.
        """
        for song in songs:
            if song.piano_count == 0:
                raise LayoutError(f"The song “{song.song_id}” has no piano score files.")
            if song.piano_count > self.max_piano_pages:
                raise LayoutError(
                    f"The song “{song.song_id}” has more than {self.max_piano_pages} "
                    f"piano score files ({song.piano_count})."
                )

    def paginate(self, songs: Iterable[Song], page_turn_optimized: bool = False, first_page: bool = True) -> list[PageGroup]:
        """
        Group ``songs`` into pages.

        Args:
            songs:               Songs in their output order.
            page_turn_optimized: Use the greedy page-turn packing.
            first_page:          The first produced page is the first page of
                                 the book and gets ``first_page_capacity``.
        """
        song_list = list(songs)
        self.validate(song_list)
        if not page_turn_optimized:
            return [PageGroup(capacity=song.piano_count, songs=[song]) for song in song_list]

        buckets = self._bucket_by_count(song_list)
        groups: list[PageGroup] = []
        while any(buckets.values()):
            capacity = self.first_page_capacity if first_page else self.page_capacity
            first_page = False
            group = self._fill_page(buckets, capacity)
            logger.debug(
                "Page %d: %s (+%d placeholders)",
                len(groups) + 1,
                ", ".join(song.song_id for song in group.songs) or "-",
                group.placeholders,
            )
            groups.append(group)
        return groups

    def layout(
        self,
        songs: Iterable[Song],
        group_alphabetically: bool = False,
        page_turn_optimized: bool = False,
    ) -> list[Chapter]:
        """
        Build the complete layout of the piano score.

        Every song is validated before any page is built, so an invalid song
        aborts the whole layout.

        Raises:
            LayoutError: If a song cannot be paginated.
        """
        song_list = list(songs)
        self.validate(song_list)
        if not group_alphabetically:
            return [Chapter(abc=None, groups=self.paginate(song_list, page_turn_optimized))]

        index: dict[str, list[Song]] = {}
        for song in song_list:
            index.setdefault(song.abc, []).append(song)

        chapters: list[Chapter] = []
        first_page = True
        for abc in sorted(index):
            bucket = sorted(index[abc], key=lambda s: s.song_id)
            groups = self.paginate(bucket, page_turn_optimized, first_page or self.restart_first_page_per_chapter)
            first_page = False
            chapters.append(Chapter(abc=abc, groups=groups))
        return chapters
