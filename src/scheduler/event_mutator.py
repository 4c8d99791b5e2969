"""
Event mutation: translates drafts and edit-form fields into Google Calendar
request bodies and applies them
"""
import logging
from typing import Any, Dict

from config.settings import Config
from src.scheduler.errors import CalendarProviderError, MutationError
from src.scheduler.models import EventDraft, MutationResult, UserCredential
from src.scheduler.time_utils import derive_end_time, local_datetime, to_rfc3339
from utils.validators import RequestValidator

logger = logging.getLogger(__name__)


class EventMutator:
    """Creates, updates and deletes events on the user's calendar"""

    def __init__(self, calendar, config: Config = None):
        self.calendar = calendar
        self.config = config or Config()

    def _time_field(self, day, hhmm: str) -> Dict[str, str]:
        return {
            "dateTime": to_rfc3339(local_datetime(day, hhmm)),
            "timeZone": self.config.TIMEZONE_NAME,
        }

    def _reminders(self) -> Dict[str, Any]:
        return {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": minutes} for minutes in self.config.REMINDER_MINUTES],
        }

    def build_event_body(self, draft: EventDraft) -> Dict[str, Any]:
        """Google Calendar insert body for a draft whose time is resolved"""
        if not draft.time:
            raise ValueError(f"Draft '{draft.title}' has no start time")

        end_time = derive_end_time(draft.time, draft.duration_hours)
        body = {
            "summary": draft.title,
            "description": draft.description or "",
            "start": self._time_field(draft.date, draft.time),
            "end": self._time_field(draft.date, end_time),
            "reminders": self._reminders(),
        }

        attendees = RequestValidator.filter_emails(draft.participants)
        skipped = len(draft.participants) - len(attendees)
        if skipped:
            logger.info(f"Skipping {skipped} participant(s) without a valid email")
        if attendees:
            body["attendees"] = [{"email": email} for email in attendees]
        return body

    def create(self, credential: UserCredential, draft: EventDraft) -> MutationResult:
        body = self.build_event_body(draft)
        send_updates = "all" if body.get("attendees") else "none"
        end_time = derive_end_time(draft.time, draft.duration_hours)

        try:
            created = self.calendar.insert_event(credential, body, send_updates=send_updates)
        except CalendarProviderError as e:
            raise MutationError("create", str(e))

        logger.info(f"✅ Event created: {created.get('id')} ({draft.title} {draft.time}-{end_time})")
        return MutationResult(event_id=created.get("id", ""), event_link=created.get("htmlLink"), end_time=end_time)

    def build_update_body(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Patch body from edit-form fields.

        ``summary`` renames the event. A time change needs ``date`` and
        ``start_time``; the end comes from ``end_time`` when given, otherwise
        it is derived from ``duration_hours`` (default one hour).
        """
        body = {}
        if fields.get("summary"):
            body["summary"] = fields["summary"]

        start_time = fields.get("start_time")
        if start_time:
            day = fields["date"]
            end_time = fields.get("end_time") or derive_end_time(
                start_time, float(fields.get("duration_hours") or self.config.DEFAULT_DURATION_HOURS)
            )
            body["start"] = self._time_field(day, start_time)
            body["end"] = self._time_field(day, end_time)
        return body

    def update(self, credential: UserCredential, event_id: str, fields: Dict[str, Any]) -> MutationResult:
        body = self.build_update_body(fields)
        if not body:
            raise MutationError("update", "nothing to update")

        try:
            updated = self.calendar.update_event(credential, event_id, body)
        except CalendarProviderError as e:
            raise MutationError("update", str(e))

        end_time = None
        if "end" in body:
            end_time = body["end"]["dateTime"][11:16]
        logger.info(f"✅ Event updated: {event_id}")
        return MutationResult(event_id=updated.get("id", event_id), event_link=updated.get("htmlLink"), end_time=end_time)

    def delete(self, credential: UserCredential, event_id: str):
        try:
            self.calendar.delete_event(credential, event_id)
        except CalendarProviderError as e:
            raise MutationError("delete", str(e))
        logger.info(f"🗑️ Event deleted: {event_id}")
