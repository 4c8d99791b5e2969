"""
Earliest-fit free slot search inside the working window
"""
import logging
from datetime import date, timedelta
from typing import List, Optional

from config.settings import Config
from src.scheduler.errors import AvailabilityQueryError, CalendarProviderError
from src.scheduler.models import BusyInterval, UserCredential
from src.scheduler.time_utils import (
    duration_minutes, from_minutes, local_datetime, parse_work_window, to_minutes
)

logger = logging.getLogger(__name__)


class SlotFinder:
    """
    Finds the first conflict-free start time on a given day.

    Candidates sit on a fixed grid (``SLOT_STEP_MINUTES``) starting at the
    beginning of the work window; the last candidate is the one that ends
    exactly at the end of the window. Slots that start off the grid are
    never proposed.
    """

    def __init__(self, calendar, config: Config = None):
        self.calendar = calendar
        self.config = config or Config()

    def candidate_starts(self, duration_hours: float, work_window: str = None) -> List[str]:
        window_start, window_end = parse_work_window(work_window or self.config.WORK_HOURS)
        first = to_minutes(window_start)
        last = to_minutes(window_end) - duration_minutes(duration_hours)
        step = self.config.SLOT_STEP_MINUTES
        return [from_minutes(minute) for minute in range(first, last + 1, step)]

    def find_free_slot(self, credential: UserCredential, day: date, duration_hours: float,
                       work_window: str = None) -> Optional[str]:
        """Earliest free 'HH:MM' start, or None when nothing fits"""
        work_window = work_window or self.config.WORK_HOURS
        candidates = self.candidate_starts(duration_hours, work_window)
        if not candidates:
            logger.info(f"🔍 {duration_hours}h does not fit in work window {work_window}")
            return None

        window_start, window_end = parse_work_window(work_window)
        try:
            busy = self.calendar.query_busy(
                credential,
                local_datetime(day, window_start),
                local_datetime(day, window_end),
            )
        except CalendarProviderError as e:
            raise AvailabilityQueryError(f"Could not check calendar: {e}")

        length = timedelta(minutes=duration_minutes(duration_hours))
        for candidate in candidates:
            slot_start = local_datetime(day, candidate)
            slot_end = slot_start + length
            if not self._conflicts(busy, slot_start, slot_end):
                logger.info(f"✅ Free slot found on {day}: {candidate} ({duration_hours}h)")
                return candidate

        logger.info(f"❌ No free slot on {day} for {duration_hours}h among {len(candidates)} candidates")
        return None

    @staticmethod
    def _conflicts(busy: List[BusyInterval], start, end) -> bool:
        return any(interval.overlaps(start, end) for interval in busy)
