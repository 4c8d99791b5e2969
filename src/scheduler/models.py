"""
Data model for the scheduling engine
"""
from dataclasses import dataclass, field
from datetime import date as Date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    MEETING = "meeting"
    TASK = "task"
    FOCUS_BLOCK = "focus_block"
    REMINDER = "reminder"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class UserCredential:
    """Decrypted OAuth tokens for one chat user; lives for a single request"""
    user_id: str
    access_token: str
    refresh_token: str = ""
    expiry_date: Optional[int] = None  # epoch milliseconds

    @property
    def connected(self) -> bool:
        return bool(self.access_token)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry_date": self.expiry_date,
        }


@dataclass
class EventDraft:
    """Structured, not yet committed scheduling intent"""
    title: str
    date: Date
    time: Optional[str] = None  # "HH:MM", resolved by SlotFinder when missing
    duration_hours: float = 1.0
    type: EventType = EventType.MEETING
    priority: Priority = Priority.MEDIUM
    participants: List[str] = field(default_factory=list)
    description: str = ""
    flexible: bool = False

    @property
    def date_str(self) -> str:
        return self.date.isoformat()

    def with_time(self, time: str) -> "EventDraft":
        return EventDraft(
            title=self.title,
            date=self.date,
            time=time,
            duration_hours=self.duration_hours,
            type=self.type,
            priority=self.priority,
            participants=list(self.participants),
            description=self.description,
            flexible=self.flexible,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date_str,
            "time": self.time,
            "duration": self.duration_hours,
            "type": self.type.value,
            "priority": self.priority.value,
            "participants": list(self.participants),
            "description": self.description,
            "flexible": self.flexible,
        }


@dataclass(frozen=True)
class BusyInterval:
    """Half-open [start, end) range reported busy by the calendar"""
    start: datetime
    end: datetime

    @classmethod
    def from_api(cls, slot: Dict[str, str]) -> "BusyInterval":
        return cls(start=parse_api_datetime(slot["start"]), end=parse_api_datetime(slot["end"]))

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Strict overlap; touching boundaries do not count"""
        return start < self.end and end > self.start


@dataclass
class CalendarEvent:
    """Read-only view of a remote calendar event"""
    event_id: str
    summary: str
    start: datetime
    end: datetime
    html_link: Optional[str] = None
    all_day: bool = False

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> "CalendarEvent":
        start_data = event.get("start", {})
        end_data = event.get("end", {})
        all_day = "date" in start_data and "dateTime" not in start_data
        if all_day:
            start = datetime.fromisoformat(start_data["date"])
            end = datetime.fromisoformat(end_data.get("date", start_data["date"]))
        else:
            start = parse_api_datetime(start_data.get("dateTime", ""))
            end = parse_api_datetime(end_data.get("dateTime", ""))
        return cls(
            event_id=event.get("id", ""),
            summary=event.get("summary", "Untitled Event"),
            start=start,
            end=end,
            html_link=event.get("htmlLink"),
            all_day=all_day,
        )

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


@dataclass
class AvailabilityResult:
    available: bool
    busy_slots: List[BusyInterval] = field(default_factory=list)


@dataclass
class MutationResult:
    event_id: str
    event_link: Optional[str] = None
    end_time: Optional[str] = None


def parse_api_datetime(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by Google (may end in 'Z')"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
