"""
Tests for the /today, /week and /delete slash commands
"""
from datetime import date, timedelta, timezone
from unittest.mock import patch

import pytest

from src.scheduler.command_handlers import CommandHandlers, parse_clock, split_update_request
from src.scheduler.errors import ExtractionError
from src.scheduler.models import EventDraft
from src.scheduler.time_utils import local_datetime

from conftest import DAY, StubExtractor, calendar_event

NOW = local_datetime(DAY, "08:00")


@pytest.fixture
def commands(scheduler):
    return CommandHandlers(scheduler)


@pytest.fixture(autouse=True)
def frozen_now():
    with patch("src.scheduler.command_handlers.now_local", return_value=NOW):
        yield


class TestToday:

    def test_not_connected(self, commands):
        assert "connect your Google Calendar" in commands.today("stranger")["text"]

    def test_empty_day(self, commands):
        text = commands.today("u1")["text"]
        assert "Monday, Jan 06" in text
        assert "No events scheduled today" in text

    def test_lists_events_of_today_only(self, commands, fake_calendar):
        fake_calendar.events = [
            calendar_event("e1", "Standup", "09:30", "10:00"),
            calendar_event("e2", "Design review", "14:00", "15:30"),
            calendar_event("e3", "Tomorrow thing", "09:00", "10:00", day=DAY + timedelta(days=1)),
        ]
        text = commands.today("u1")["text"]

        assert "• **09:30** - Standup (0.5h)" in text
        assert "• **14:00** - Design review (1.5h)" in text
        assert "Tomorrow thing" not in text
        assert "Total: 2 events" in text

    def test_provider_failure(self, commands, fake_calendar, provider_error):
        fake_calendar.errors["list_events"] = provider_error
        assert commands.today("u1")["text"] == "❌ Could not fetch today's schedule: Backend Error"


class TestWeek:

    def test_groups_by_day_within_sunday_week(self, commands, fake_calendar):
        fake_calendar.events = [
            calendar_event("e0", "Last week", "10:00", "11:00", day=date(2025, 1, 4)),
            calendar_event("e1", "Brunch", "11:00", "12:00", day=date(2025, 1, 5)),
            calendar_event("e2", "Standup", "09:30", "10:00"),
            calendar_event("e3", "Retro", "16:00", "17:00"),
            calendar_event("e4", "Demo", "15:00", "16:00", day=date(2025, 1, 10)),
        ]
        text = commands.week("u1")["text"]

        assert "Last week" not in text
        assert text.index("**Sun, Jan 05**") < text.index("**Mon, Jan 06**") < text.index("**Fri, Jan 10**")
        assert "  • 09:30 - Standup\n  • 16:00 - Retro" in text
        assert "Total: 4 events this week" in text

    def test_empty_week(self, commands):
        assert "No events scheduled this week" in commands.week("u1")["text"]

    def test_group_by_day_uses_local_dates(self):
        late_utc = calendar_event("e1", "Late", "04:00", "05:00", day=DAY)
        late_utc.start = late_utc.start.astimezone(timezone.utc)
        grouped = CommandHandlers.group_by_day([late_utc])
        assert list(grouped) == ["Mon, Jan 06"]


class TestDelete:

    def test_requires_description(self, commands):
        assert "Please specify what to delete" in commands.delete("u1", "  ")["text"]

    def test_unparseable_description(self, commands, extractor):
        extractor.error = ExtractionError("Could not parse AI response")
        assert "couldn't understand which event" in commands.delete("u1", "that thing")["text"]

    def test_deletes_title_match(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="review", date=DAY)
        fake_calendar.events = [
            calendar_event("e1", "Standup", "09:30", "10:00"),
            calendar_event("e2", "Design Review", "14:00", "15:00"),
        ]
        text = commands.delete("u1", "design review on monday")["text"]

        assert "Event Deleted Successfully" in text
        assert "Design Review" in text
        assert fake_calendar.calls_to("delete_event")[0][1][1] == "e2"

    def test_time_disambiguates_same_title(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="sync", date=DAY, time="15:00")
        fake_calendar.events = [
            calendar_event("e1", "Team sync", "10:00", "10:30"),
            calendar_event("e2", "Team sync", "15:00", "15:30"),
        ]
        commands.delete("u1", "team sync monday at 3pm")
        assert fake_calendar.calls_to("delete_event")[0][1][1] == "e2"

    def test_no_match_lists_the_day(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="dentist", date=DAY)
        fake_calendar.events = [calendar_event("e1", "Standup", "09:30", "10:00")]
        text = commands.delete("u1", "dentist monday")["text"]

        assert "Couldn't find matching event" in text
        assert "1. **Standup** at 09:30" in text
        assert fake_calendar.calls_to("delete_event") == []

    def test_no_events_that_day(self, commands, extractor):
        extractor.draft = EventDraft(title="dentist", date=DAY)
        assert commands.delete("u1", "dentist monday")["text"] == "❌ No events found on 2025-01-06"

    def test_match_requires_time_when_given(self):
        events = [calendar_event("e1", "Team sync", "10:00", "10:30")]
        assert CommandHandlers.find_match(events, EventDraft(title="sync", date=DAY, time="15:00")) is None
        assert CommandHandlers.find_match(events, EventDraft(title="SYNC", date=DAY)).event_id == "e1"


class SequenceExtractor(StubExtractor):
    """Hands out one preset draft per extraction, in order"""

    def __init__(self, drafts):
        super().__init__()
        self.drafts = list(drafts)

    def extract(self, text, context=None):
        self.requests.append(text)
        return self.drafts.pop(0)


class TestUpdateParsing:

    @pytest.mark.parametrize("arguments, expected", [
        ("standup today to 11 AM", ("standup today", None, "11:00")),
        ("review friday move to monday 3 PM", ("review friday", "monday 3 PM", "15:00")),
        ("sync change time to 4:30pm", ("sync", None, "16:30")),
        ("demo reschedule to Jan 15", ("demo", "Jan 15", None)),
        ("standup to 15", ("standup", None, "15:00")),
        ("standup today", ("standup today", None, None)),
    ])
    def test_split_update_request(self, arguments, expected):
        assert split_update_request(arguments) == expected

    @pytest.mark.parametrize("text, expected", [
        ("12 am", "00:00"),
        ("12 PM", "12:00"),
        ("9:05", "09:05"),
        ("13 pm", None),
        ("noon", None),
    ])
    def test_parse_clock(self, text, expected):
        assert parse_clock(text) == expected


class TestUpdate:

    def test_requires_description(self, commands):
        assert "Please specify what to update" in commands.update("u1", "")["text"]

    def test_requires_a_change(self, commands, extractor):
        assert "Please say what to change" in commands.update("u1", "team sync monday")["text"]
        assert extractor.requests == []

    def test_not_connected(self, commands):
        assert "connect your Google Calendar" in commands.update("stranger", "sync to 3 PM")["text"]

    def test_new_time_keeps_length(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="sync", date=DAY)
        fake_calendar.events = [calendar_event("e1", "Team sync", "10:00", "10:30")]

        text = commands.update("u1", "team sync monday to 3 PM")["text"]

        _, (_, event_id, body), _ = fake_calendar.calls_to("update_event")[0]
        assert event_id == "e1"
        assert body["start"]["dateTime"] == "2025-01-06T15:00:00+05:30"
        assert body["end"]["dateTime"] == "2025-01-06T15:30:00+05:30"
        assert "Event Updated Successfully" in text
        assert "⏰ New Time: 15:00 - 15:30" in text
        assert "[View in Calendar](https://calendar.google.com/event?eid=e1)" in text
        assert extractor.requests == ["team sync monday"]

    def test_move_to_another_day_keeps_time(self, scheduler, fake_calendar):
        scheduler.extractor = SequenceExtractor([
            EventDraft(title="review", date=DAY),
            EventDraft(title="event", date=date(2025, 1, 8)),
        ])
        fake_calendar.events = [calendar_event("e2", "Design Review", "14:00", "15:30")]

        text = CommandHandlers(scheduler).update("u1", "design review monday move to wednesday")["text"]

        body = fake_calendar.calls_to("update_event")[0][1][2]
        assert body["start"]["dateTime"] == "2025-01-08T14:00:00+05:30"
        assert body["end"]["dateTime"] == "2025-01-08T15:30:00+05:30"
        assert "Wednesday, January 08" in text
        assert scheduler.extractor.requests == ["design review monday", "event on wednesday"]

    def test_unknown_event(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="dentist", date=DAY)
        fake_calendar.events = [calendar_event("e1", "Standup", "09:30", "10:00")]

        text = commands.update("u1", "dentist monday to 4 PM")["text"]
        assert 'Couldn\'t find "dentist" on Monday, January 06' in text
        assert fake_calendar.calls_to("update_event") == []

    def test_move_to_end_of_day_is_refused(self, commands, fake_calendar, extractor):
        extractor.draft = EventDraft(title="sync", date=DAY)
        fake_calendar.events = [calendar_event("e1", "Team sync", "10:00", "11:00")]

        text = commands.update("u1", "team sync monday to 23:59")["text"]
        assert text == "❌ Failed to update event: end_time must be after start_time"
        assert fake_calendar.calls_to("update_event") == []

    def test_provider_failure(self, commands, fake_calendar, extractor, provider_error):
        extractor.draft = EventDraft(title="sync", date=DAY)
        fake_calendar.events = [calendar_event("e1", "Team sync", "10:00", "11:00")]
        fake_calendar.errors["update_event"] = provider_error

        assert commands.update("u1", "team sync to 4 PM")["text"] == "❌ Failed to update event: Backend Error"

    def test_unreadable_target(self, commands, extractor):
        extractor.error = ExtractionError("Could not parse AI response")
        assert "couldn't understand which event to update" in commands.update("u1", "that to 4 PM")["text"]


class TestTodayWidget:

    def test_lists_events_with_status_and_actions(self, commands, fake_calendar):
        fake_calendar.events = [
            calendar_event("e1", "Gym", "07:00", "07:30"),
            calendar_event("e2", "Deep work", "07:30", "09:00"),
            calendar_event("e3", "Review", "14:00", "15:00"),
        ]
        widget = commands.today_widget("u1")

        assert widget["type"] == "applet"
        assert widget["header"]["title"] == "📅 Today - Jan 06"
        summary = widget["sections"][0]["elements"][1]["text"]
        assert summary == "✅ Completed: **1** | 🔵 In Progress: **1** | ⏳ Upcoming: **1**"

        assert [section["id"] for section in widget["sections"]] == [1, 2, 3, 4, 5]
        review = widget["sections"][4]["elements"]
        assert review[0]["text"] == "⏳ **Review**\n⏰ 14:00 - 15:00 (1.0h) • _Upcoming_"
        assert [button["id"] for button in review[1]["buttons"]] == ["edit_e3", "del_e3"]

    def test_empty_day(self, commands):
        widget = commands.today_widget("u1")
        assert "No tasks scheduled for today" in widget["sections"][1]["elements"][0]["text"]

    def test_not_connected(self, commands):
        widget = commands.today_widget("stranger")
        assert widget["data_type"] == "info"
        assert "connect your Google Calendar" in widget["info"]["description"]

    def test_unknown_user(self, commands):
        assert commands.today_widget("unknown")["info"]["description"] == "Could not identify user"

    def test_provider_failure(self, commands, fake_calendar, provider_error):
        fake_calendar.errors["list_events"] = provider_error
        assert commands.today_widget("u1")["info"]["description"] == "Error loading calendar data: Backend Error"
