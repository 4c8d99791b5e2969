"""
Error taxonomy for the scheduling engine

Everything except ConfigurationError is recoverable and is turned into a
user-facing response by SmartScheduler.
"""


class SchedulingError(Exception):
    """Base class for scheduling errors"""


class ConfigurationError(SchedulingError):
    """Missing or invalid process configuration (fatal at startup)"""


class NotConnectedError(SchedulingError):
    """The user has no usable Google Calendar authorization"""


class ExtractionError(SchedulingError):
    """The extractor could not produce a valid event draft"""

    def __init__(self, reason: str, raw_response: str = None):
        super().__init__(reason)
        self.reason = reason
        self.raw_response = raw_response


class CalendarProviderError(SchedulingError):
    """A Google Calendar API call failed"""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class AvailabilityQueryError(SchedulingError):
    """Busy intervals could not be fetched, availability is unknown"""


class MutationError(SchedulingError):
    """Creating, updating or deleting an event failed"""

    def __init__(self, action: str, detail: str):
        super().__init__(f"{action} failed: {detail}")
        self.action = action
        self.detail = detail


class SessionExpiredError(SchedulingError):
    """No live edit session for the user"""
