"""
Free/busy check for one concrete candidate slot
"""
import logging
from datetime import date

from src.scheduler.errors import AvailabilityQueryError, CalendarProviderError
from src.scheduler.models import AvailabilityResult, UserCredential
from src.scheduler.time_utils import local_datetime

logger = logging.getLogger(__name__)


class AvailabilityChecker:
    """Validates a proposed [start, end) window right before an event is created"""

    def __init__(self, calendar):
        self.calendar = calendar

    def check_availability(self, credential: UserCredential, day: date, start_time: str,
                           end_time: str) -> AvailabilityResult:
        start = local_datetime(day, start_time)
        end = local_datetime(day, end_time)

        try:
            reported = self.calendar.query_busy(credential, start, end)
        except CalendarProviderError as e:
            raise AvailabilityQueryError(f"Could not check calendar: {e}")

        # Providers may report intervals that only touch the window
        busy = [interval for interval in reported if interval.overlaps(start, end)]
        busy.sort(key=lambda interval: interval.start)

        logger.info(f"📅 Availability check {day} {start_time}-{end_time}: {'BUSY' if busy else 'FREE'}")
        return AvailabilityResult(available=not busy, busy_slots=busy)
