"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Config
from src.scheduler.errors import CalendarProviderError
from src.scheduler.models import BusyInterval, CalendarEvent, EventDraft, UserCredential
from src.scheduler.smart_scheduler import SmartScheduler
from src.scheduler.time_utils import local_datetime
from src.storage.credential_store import CredentialStore
from src.storage.edit_sessions import EditSessionStore

TEST_KEY = "0123456789abcdef0123456789abcdef"
APP_KEY = "test-cliq-app-key"
DAY = date(2025, 1, 6)


class FakeCalendar:
    """In-memory stand-in for GoogleCalendarClient that records every call"""

    def __init__(self):
        self.busy = []
        self.events = []
        self.calls = []
        self.errors = {}
        self._next_id = 1

    def _call(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.errors:
            raise self.errors[name]

    def calls_to(self, name):
        return [call for call in self.calls if call[0] == name]

    def query_busy(self, credential, time_min, time_max):
        self._call("query_busy", credential, time_min, time_max)
        # Deliberately unfiltered: callers must apply their own overlap test
        return list(self.busy)

    def insert_event(self, credential, body, send_updates="none"):
        self._call("insert_event", credential, body, send_updates=send_updates)
        event_id = f"evt-{self._next_id}"
        self._next_id += 1
        return {"id": event_id, "htmlLink": f"https://calendar.google.com/event?eid={event_id}"}

    def update_event(self, credential, event_id, body):
        self._call("update_event", credential, event_id, body)
        return {"id": event_id, "htmlLink": f"https://calendar.google.com/event?eid={event_id}"}

    def delete_event(self, credential, event_id):
        self._call("delete_event", credential, event_id)

    def list_events(self, credential, time_min, time_max, max_results=250):
        self._call("list_events", credential, time_min, time_max)
        return [event for event in self.events if time_min <= event.start < time_max]

    def get_auth_url(self, user_id):
        return f"https://accounts.google.com/o/oauth2/auth?state={user_id}"

    def exchange_code(self, code):
        self._call("exchange_code", code)
        return {"access_token": f"access-{code}", "refresh_token": f"refresh-{code}", "expiry_date": 4102444800000}


class StubExtractor:
    """Returns a preset draft (or raises a preset error) for every request"""

    def __init__(self, draft=None, error=None):
        self.draft = draft
        self.error = error
        self.requests = []

    def extract(self, text, context=None):
        self.requests.append(text)
        if self.error is not None:
            raise self.error
        return self.draft


class SpyCredentialStore(CredentialStore):
    """CredentialStore that counts lookups"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookups = 0

    def get(self, user_id):
        self.lookups += 1
        return super().get(user_id)


def busy(start, end, day=DAY):
    return BusyInterval(local_datetime(day, start), local_datetime(day, end))


def calendar_event(event_id, summary, start, end, day=DAY):
    return CalendarEvent(event_id=event_id, summary=summary,
                         start=local_datetime(day, start), end=local_datetime(day, end))


@pytest.fixture
def config(tmp_path):
    """Config instance pointing at a temporary credential file"""
    cfg = Config()
    cfg.ENCRYPTION_KEY = TEST_KEY
    cfg.USERS_FILE = str(tmp_path / "data" / "users.json")
    cfg.CLIQ_APP_KEY = APP_KEY
    cfg.ENVIRONMENT = "production"
    cfg.PUBLIC_BASE_URL = "https://assistant.example.com"
    cfg.WORK_HOURS = "09:00-18:00"
    cfg.SLOT_STEP_MINUTES = 30
    cfg.GOOGLE_CLIENT_ID = "client-id"
    cfg.GOOGLE_CLIENT_SECRET = "client-secret"
    cfg.PERPLEXITY_API_KEY = "pplx-test"
    return cfg


@pytest.fixture
def credential_store(config):
    return SpyCredentialStore(config)


@pytest.fixture
def credential():
    return UserCredential(user_id="u1", access_token="access-token", refresh_token="refresh-token",
                          expiry_date=4102444800000)


@pytest.fixture
def connected_store(credential_store, credential):
    credential_store.save("u1", credential.to_dict())
    return credential_store


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def draft():
    return EventDraft(title="Team sync", date=DAY, time="15:00", duration_hours=1.0,
                      participants=["alice@example.com", "Bob"])


@pytest.fixture
def extractor(draft):
    return StubExtractor(draft=draft)


@pytest.fixture
def scheduler(config, connected_store, fake_calendar, extractor):
    return SmartScheduler(
        config,
        credential_store=connected_store,
        calendar=fake_calendar,
        extractor=extractor,
        edit_sessions=EditSessionStore(ttl_seconds=900),
    )


@pytest.fixture
def provider_error():
    return CalendarProviderError("Backend Error", status=503)
