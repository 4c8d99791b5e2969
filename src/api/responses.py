"""
User-facing message shapes for the chat platform

Every terminal scheduling state maps to exactly one builder here. Payloads
are either ``{"text": ...}`` or a message with ``card``/``slides``/``buttons``.
"""
from datetime import datetime
from typing import Any, Dict, List, Tuple

from src.scheduler.models import BusyInterval, CalendarEvent, EventDraft
from src.scheduler.time_utils import format_local_time, format_long_date

EXAMPLE_REQUESTS = [
    "Schedule meeting with team tomorrow at 3 PM",
    "Block 2 hours Friday afternoon for project work",
    "Remind me to submit report by next Monday",
]


def _examples() -> str:
    return "\n".join(f"• \"{example}\"" for example in EXAMPLE_REQUESTS)


def _url_button(label: str, url: str) -> Dict[str, Any]:
    return {"label": label, "type": "+", "action": {"type": "open.url", "data": {"web": url}}}


def greeting(user_name: str) -> Dict[str, Any]:
    return {
        "text": f"👋 Hi {user_name}! I'm your calendar assistant.\n\n"
                f"Tell me what to schedule, for example:\n{_examples()}"
    }


def gratitude() -> Dict[str, Any]:
    return {"text": "😊 You're welcome! Let me know whenever you need something scheduled."}


def small_talk() -> Dict[str, Any]:
    return {
        "text": "🤖 I'm doing great, thanks for asking! I help you manage your Google Calendar.\n\n"
                f"Try something like:\n{_examples()}"
    }


def ambiguous() -> Dict[str, Any]:
    return {"text": '⚠️ Please provide a message. Example: "Schedule meeting tomorrow at 3 PM"'}


def not_scheduling_request() -> Dict[str, Any]:
    return {
        "text": "🤔 That doesn't look like a scheduling request.\n\n"
                f"I can create events for you, try:\n{_examples()}"
    }


def connect_calendar(connect_url: str) -> Dict[str, Any]:
    return {
        "text": "🔗 **Please connect your Google Calendar first!**\n\n"
                "I need access to your calendar to:\n"
                "• Check your availability\n"
                "• Create events\n\n"
                f"Connect here: {connect_url}",
        "buttons": [_url_button("Connect Now", connect_url)],
    }


def extraction_failed(reason: str) -> Dict[str, Any]:
    return {
        "text": f"❌ I couldn't understand that. Please try:\n\n{_examples()}\n\nError: {reason}"
    }


def availability_failed(detail: str) -> Dict[str, Any]:
    return {"text": f"⚠️ {detail}"}


def format_busy_slots(busy_slots: List[BusyInterval]) -> str:
    return "\n".join(
        f"• {format_local_time(slot.start)} - {format_local_time(slot.end)}" for slot in busy_slots
    )


def conflict(draft: EventDraft, busy_slots: List[BusyInterval]) -> Dict[str, Any]:
    return {
        "text": "⚠️ **Time Slot Conflict!**\n\n"
                f"You already have something scheduled at {draft.time} on {format_long_date(draft.date)}.\n\n"
                f"Busy slots:\n{format_busy_slots(busy_slots)}\n\n"
                "Please choose a different time."
    }


def no_free_slot(draft: EventDraft, work_window: str) -> Dict[str, Any]:
    return {
        "text": "⚠️ **No Free Slot!**\n\n"
                f"I couldn't find {_hours(draft.duration_hours)} free between {work_window.replace('-', ' and ')} "
                f"on {format_long_date(draft.date)}.\n\n"
                "Try another day or give me a specific time."
    }


def no_time_left(draft: EventDraft) -> Dict[str, Any]:
    # Events never run past 23:59, so a start at the very end of the day has no length
    return {
        "text": f"⚠️ An event starting at {draft.time} would have no time left on "
                f"{format_long_date(draft.date)}.\n\nPlease pick an earlier time or another day."
    }


def mutation_failed(action: str, detail: str) -> Dict[str, Any]:
    return {"text": f"❌ Failed to {action} event: {detail}"}


def _hours(duration: float) -> str:
    value = f"{duration:g}"
    return f"{value} hour{'s' if duration > 1 else ''}"


def success_card(draft: EventDraft, event_link: str, end_time: str) -> Dict[str, Any]:
    """Event created card: details slide, reminder slide, calendar button"""
    response = {
        "text": "✅ Event Created Successfully!",
        "card": {"title": f"📅 {draft.title}", "theme": "modern-inline"},
        "slides": [
            {
                "type": "text",
                "title": "📋 Event Details",
                "data": f"**Date:** {format_long_date(draft.date)}\n"
                        f"**Time:** {draft.time} - {end_time}\n"
                        f"**Duration:** {_hours(draft.duration_hours)}\n"
                        f"**Type:** {draft.type.value}\n"
                        f"**Priority:** {draft.priority.value}",
            },
            {
                "type": "text",
                "title": "🔔 Reminders",
                "data": "Reminders set for 30 and 10 minutes before the event",
            },
        ],
    }
    if event_link:
        response["buttons"] = [_url_button("🗓️ Open Calendar", event_link)]
    return response


# Widget actions answer with a status object rather than a chat message

def widget_success(message: str, **extra) -> Dict[str, Any]:
    return dict({"success": True, "message": message}, **extra)


def widget_failure(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}


def internal_error() -> Dict[str, Any]:
    return {"text": "⚠️ An error occurred. Please try again."}


# Home widget (Cliq applet) listing today's events with edit/delete actions

def _event_status(event: CalendarEvent, now: datetime) -> Tuple[str, str]:
    if event.all_day:
        # All-day bounds are naive dates, the end one exclusive
        if event.end.date() <= now.date():
            return "✅", "Completed"
        if event.start.date() <= now.date():
            return "🔵", "In Progress"
        return "⏳", "Upcoming"
    if event.end < now:
        return "✅", "Completed"
    if event.start <= now:
        return "🔵", "In Progress"
    return "⏳", "Upcoming"


def _event_section(section_id: int, event: CalendarEvent, now: datetime) -> Dict[str, Any]:
    icon, status = _event_status(event, now)
    if event.all_day:
        when = "All day"
    else:
        when = f"{format_local_time(event.start)} - {format_local_time(event.end)} ({event.duration_hours:.1f}h)"
    return {
        "id": section_id,
        "elements": [
            {"type": "text", "text": f"{icon} **{event.summary}**\n⏰ {when} • _{status}_"},
            {
                "type": "buttons",
                "buttons": [
                    {"label": "✏️ Edit", "type": "invoke.function", "name": "editTaskFromWidget",
                     "id": f"edit_{event.event_id}"},
                    {"label": "🗑️ Delete", "type": "invoke.function", "name": "deleteTaskFromWidget",
                     "id": f"del_{event.event_id}", "emotion": "negative"},
                ],
            },
            {"type": "divider"},
        ],
    }


def today_widget(events: List[CalendarEvent], now: datetime) -> Dict[str, Any]:
    """
    Single-tab applet: a summary section, then one section per event whose
    button ids carry the event id (``edit_<id>``/``del_<id>``) so the widget
    handlers can call /widget/start-edit and /calendar/delete.
    """
    statuses = [_event_status(event, now)[1] for event in events]
    sections = [{
        "id": 1,
        "elements": [
            {"type": "title", "text": "📊 Today's Summary"},
            {
                "type": "text",
                "text": f"✅ Completed: **{statuses.count('Completed')}** | "
                        f"🔵 In Progress: **{statuses.count('In Progress')}** | "
                        f"⏳ Upcoming: **{statuses.count('Upcoming')}**",
            },
            {"type": "divider"},
        ],
    }]

    if not events:
        sections.append({"id": 2, "elements": [{"type": "text", "text": "📭 **No tasks scheduled for today!**"}]})
    else:
        sections.append({"id": 2, "elements": [{"type": "title", "text": f"📋 All Tasks ({len(events)})"}]})
        sections.extend(_event_section(index, event, now) for index, event in enumerate(events, 3))

    return {
        "type": "applet",
        "tabs": [{"label": "Today's Tasks", "id": "overview"}],
        "active_tab": "overview",
        "sections": sections,
        "header": {"title": f"📅 Today - {now.strftime('%b %d')}", "navigation": "new"},
    }


def error_widget(message: str) -> Dict[str, Any]:
    return {
        "type": "applet",
        "data_type": "info",
        "info": {
            "title": "⚠️ Tasks Widget Error",
            "description": message,
            "button": {"label": "Connect Calendar", "type": "invoke.function", "name": "connectCalendar",
                       "id": "connect_btn"},
        },
        "tabs": [{"label": "Error", "id": "error_tab"}],
        "active_tab": "error_tab",
    }
