"""
Slash command handlers: /today, /week, /delete <description> and /update <description>
"""
import logging
import re
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from src.ai_agent.event_extractor import ExtractionContext
from src.api import responses
from src.scheduler.errors import CalendarProviderError, ExtractionError, MutationError, NotConnectedError
from src.scheduler.models import CalendarEvent, EventDraft
from src.scheduler.time_utils import (
    LOCAL_TZ, day_bounds, derive_end_time, format_hhmm, format_local_time, now_local, week_bounds
)
from utils.validators import RequestValidator

logger = logging.getLogger(__name__)

CONNECT_FIRST = "🔗 Please connect your Google Calendar first!"

# "<event> move to <date> [time]" or "<event> to <time>"
_UPDATE_SPLIT_RE = re.compile(r"\s+(move to|reschedule to|change time to|to)\s+", re.IGNORECASE)
_DATE_KEYWORDS = ("move to", "reschedule to")

# "3 PM", "11:30am", "15:00"; a bare "15" only counts after a plain "to"
_CLOCK_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE)

UPDATE_SYNTAX = (
    "**Update syntax:**\n"
    "• Time: `/update [event] to [time]`\n"
    "• Date: `/update [event] move to [date]`\n"
    "• Both: `/update [event] move to [date] [time]`\n\n"
    "Example: `/update meeting today move to tomorrow 3 PM`"
)


def parse_clock(text: str, allow_bare_hour: bool = False) -> Optional[str]:
    """First 'HH:MM' named in text, honouring am/pm; None when there is none"""
    for match in _CLOCK_RE.finditer(text or ""):
        hour, minute, meridiem = int(match.group(1)), match.group(2), match.group(3)
        if minute is None and meridiem is None and not allow_bare_hour:
            continue
        if meridiem:
            if not 1 <= hour <= 12:
                continue
            if meridiem.lower() == "pm" and hour < 12:
                hour += 12
            elif meridiem.lower() == "am" and hour == 12:
                hour = 0
        minutes = int(minute) if minute else 0
        if hour < 24 and minutes < 60:
            return format_hhmm(hour, minutes)
    return None


def split_update_request(arguments: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Split '/update' arguments into (event description, new date text, new time).

    "standup today to 11 AM" -> ("standup today", None, "11:00")
    "review friday move to monday 3 PM" -> ("review friday", "monday 3 PM", "15:00")
    """
    parts = _UPDATE_SPLIT_RE.split(arguments.strip(), maxsplit=1)
    if len(parts) < 3:
        return arguments.strip(), None, None

    target, keyword, change = parts[0].strip(), parts[1].lower(), parts[2].strip()
    if keyword in _DATE_KEYWORDS:
        return target, change, parse_clock(change)
    return target, None, parse_clock(change, allow_bare_hour=True)


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def _start_label(event: CalendarEvent) -> str:
    return "All day" if event.all_day else format_local_time(event.start)


class CommandHandlers:
    """Listings plus delete and update by description, on top of the scheduler's components"""

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self.config = scheduler.config
        self.credential_store = scheduler.credential_store
        self.calendar = scheduler.calendar

    def _connect_message(self, user_id: str) -> Dict[str, Any]:
        return {"text": f"{CONNECT_FIRST}\n\nConnect here: {self.config.connect_url(user_id)}"}

    def today(self, user_id: str) -> Dict[str, Any]:
        credential = self.credential_store.get(user_id)
        if credential is None:
            return self._connect_message(user_id)

        now = now_local()
        header = f"📅 **Today's Schedule** - {now.strftime('%A, %b %d')}\n\n"
        try:
            events = self.calendar.list_events(credential, *day_bounds(now.date()))
        except NotConnectedError:
            return self._connect_message(user_id)
        except CalendarProviderError as e:
            return {"text": f"❌ Could not fetch today's schedule: {e}"}

        if not events:
            return {"text": header + "✨ No events scheduled today!\n\nPerfect day for deep work or catching up on tasks. 💪"}

        lines = "\n".join(
            f"• **{_start_label(event)}** - {event.summary} ({event.duration_hours:g}h)" for event in events
        )
        return {"text": f"{header}{lines}\n\n📊 Total: {len(events)} event{_plural(len(events))}"}

    def today_widget(self, user_id: str) -> Dict[str, Any]:
        """Home widget payload for today's events"""
        if not user_id or user_id == "unknown":
            return responses.error_widget("Could not identify user")

        credential = self.credential_store.get(user_id)
        if credential is None:
            return responses.error_widget("Please connect your Google Calendar first using /connect command")

        now = now_local()
        try:
            events = self.calendar.list_events(credential, *day_bounds(now.date()))
        except NotConnectedError:
            return responses.error_widget("Please connect your Google Calendar first using /connect command")
        except CalendarProviderError as e:
            return responses.error_widget(f"Error loading calendar data: {e}")

        logger.info(f"📊 Widget for {user_id}: {len(events)} events today")
        return responses.today_widget(events, now)

    def week(self, user_id: str) -> Dict[str, Any]:
        credential = self.credential_store.get(user_id)
        if credential is None:
            return self._connect_message(user_id)

        try:
            events = self.calendar.list_events(credential, *week_bounds(now_local().date()))
        except NotConnectedError:
            return self._connect_message(user_id)
        except CalendarProviderError as e:
            return {"text": f"❌ Could not fetch this week's schedule: {e}"}

        text = "📊 **This Week's Schedule**\n\n"
        if not events:
            return {"text": text + "✨ No events scheduled this week!"}

        for day, day_events in self.group_by_day(events).items():
            text += f"**{day}**\n"
            for event in day_events:
                text += f"  • {_start_label(event)} - {event.summary}\n"
            text += "\n"

        text += f"📈 Total: {len(events)} event{_plural(len(events))} this week"
        return {"text": text}

    @staticmethod
    def group_by_day(events: List[CalendarEvent]) -> "OrderedDict[str, List[CalendarEvent]]":
        grouped = OrderedDict()
        for event in events:
            start = event.start if event.all_day else event.start.astimezone(LOCAL_TZ)
            grouped.setdefault(start.strftime("%a, %b %d"), []).append(event)
        return grouped

    def delete(self, user_id: str, arguments: str) -> Dict[str, Any]:
        """Delete the event best matching a free-text description"""
        credential = self.credential_store.get(user_id)
        if credential is None:
            return self._connect_message(user_id)

        if not arguments or not arguments.strip():
            return {
                "text": "❌ Please specify what to delete.\n\n"
                        "**Examples:**\n"
                        "• `/delete meeting tomorrow at 3 PM`\n"
                        "• `/delete team standup on Friday`\n"
                        "• `/delete presentation next Monday`"
            }

        try:
            draft = self.scheduler.extractor.extract(arguments, ExtractionContext(
                timezone=self.config.TIMEZONE_NAME, work_hours=self.config.WORK_HOURS
            ))
        except ExtractionError as e:
            logger.warning(f"Delete command extraction failed: {e.reason}")
            return {
                "text": "❌ I couldn't understand which event to delete.\n\n"
                        "Please be more specific about the date and time."
            }

        try:
            events = self.calendar.list_events(credential, *day_bounds(draft.date))
        except NotConnectedError:
            return self._connect_message(user_id)
        except CalendarProviderError as e:
            return {"text": f"❌ Failed to delete event: {e}"}

        if not events:
            return {"text": f"❌ No events found on {draft.date_str}"}

        match = self.find_match(events, draft)
        if match is None:
            listing = "\n".join(
                f"{i}. **{event.summary}** at {_start_label(event)}" for i, event in enumerate(events, 1)
            )
            return {
                "text": f"❌ Couldn't find matching event.\n\n**Events on {draft.date_str}:**\n{listing}\n\n"
                        "Try: `/delete [exact event name] at [time]`"
            }

        try:
            self.scheduler.mutator.delete(credential, match.event_id)
        except NotConnectedError:
            return self._connect_message(user_id)
        except MutationError as e:
            return {"text": f"❌ Failed to delete event: {e.detail}"}

        start = match.start if match.all_day else match.start.astimezone(LOCAL_TZ)
        return {
            "text": "✅ **Event Deleted Successfully!**\n\n"
                    f"🗑️ Deleted: **{match.summary}**\n"
                    f"📅 Date: {start.strftime('%A, %B %d')}\n"
                    f"⏰ Time: {_start_label(match)}"
        }

    def update(self, user_id: str, arguments: str) -> Dict[str, Any]:
        """Move the event matching a free-text description to a new time and/or date"""
        credential = self.credential_store.get(user_id)
        if credential is None:
            return self._connect_message(user_id)

        if not arguments or not arguments.strip():
            return {
                "text": "❌ Please specify what to update.\n\n"
                        "**Examples:**\n"
                        "• `/update meeting today at 2 PM move to tomorrow 3 PM`\n"
                        "• `/update team standup change time to 11 AM`\n"
                        "• `/update presentation next Monday move to Tuesday`"
            }

        target, new_date_text, new_time = split_update_request(arguments)
        if not new_date_text and not new_time:
            return {"text": f"❌ Please say what to change.\n\n{UPDATE_SYNTAX}"}

        context = ExtractionContext(timezone=self.config.TIMEZONE_NAME, work_hours=self.config.WORK_HOURS)
        try:
            draft = self.scheduler.extractor.extract(target, context)
        except ExtractionError as e:
            logger.warning(f"Update command extraction failed: {e.reason}")
            return {
                "text": "❌ I couldn't understand which event to update.\n\n"
                        "Please specify the event name, date, and what to change."
            }

        try:
            events = self.calendar.list_events(credential, *day_bounds(draft.date))
        except NotConnectedError:
            return self._connect_message(user_id)
        except CalendarProviderError as e:
            return {"text": f"❌ Failed to update event: {e}"}

        match = self.find_match(events, draft)
        if match is None:
            return {
                "text": f"❌ Couldn't find \"{draft.title}\" on {draft.date.strftime('%A, %B %d')}.\n\n{UPDATE_SYNTAX}"
            }
        if match.all_day:
            return {"text": "❌ All-day events can't be moved from chat. Please update it in Google Calendar directly."}

        new_day = match.start.astimezone(LOCAL_TZ).date()
        if new_date_text:
            try:
                new_day = self.scheduler.extractor.extract(f"event on {new_date_text}", context).date
            except ExtractionError as e:
                logger.warning(f"Update command could not read new date {new_date_text!r}: {e.reason}")
                return {"text": f"❌ I couldn't understand the new date \"{new_date_text}\"."}

        fields = self.reschedule_fields(match, new_day, new_time)
        errors = RequestValidator.validate_update_fields(fields)
        if errors:
            return {"text": f"❌ Failed to update event: {'; '.join(errors)}"}

        try:
            result = self.scheduler.mutator.update(credential, match.event_id, fields)
        except NotConnectedError:
            return self._connect_message(user_id)
        except MutationError as e:
            return {"text": f"❌ Failed to update event: {e.detail}"}

        text = (
            "✅ **Event Updated Successfully!**\n\n"
            f"📝 Event: **{match.summary}**\n"
            f"📅 New Date: {new_day.strftime('%A, %B %d')}\n"
            f"⏰ New Time: {fields['start_time']} - {result.end_time}"
        )
        if result.event_link:
            text += f"\n\n🔗 [View in Calendar]({result.event_link})"
        return {"text": text}

    @staticmethod
    def reschedule_fields(event: CalendarEvent, new_day: date, new_time: Optional[str]) -> Dict[str, Any]:
        """Edit fields that move event to new_day/new_time keeping its length"""
        start_time = new_time or format_local_time(event.start)
        return {
            "date": new_day.isoformat(),
            "start_time": start_time,
            "end_time": derive_end_time(start_time, event.duration_hours),
        }

    @staticmethod
    def find_match(events: List[CalendarEvent], draft: EventDraft) -> Optional[CalendarEvent]:
        """
        First event whose title contains the draft title (case-insensitive).
        When the description names a time, an event at that exact start wins.
        """
        title = draft.title.lower()
        candidates = [event for event in events if title in (event.summary or "").lower()]
        if not candidates:
            return None
        if draft.time:
            timed = [event for event in candidates if not event.all_day and format_local_time(event.start) == draft.time]
            return timed[0] if timed else None
        return candidates[0]
