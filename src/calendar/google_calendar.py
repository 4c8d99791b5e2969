"""
Google Calendar integration for the Smart Calendar Assistant

Everything the scheduling engine needs from the provider goes through
GoogleCalendarClient: OAuth connect, busy-interval queries and event
insert/update/delete/list. API failures surface as CalendarProviderError.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config.settings import Config
from src.scheduler.errors import CalendarProviderError, NotConnectedError
from src.scheduler.models import BusyInterval, CalendarEvent, UserCredential
from src.scheduler.time_utils import to_rfc3339

logger = logging.getLogger(__name__)


def _http_error_message(error: HttpError) -> str:
    return str(getattr(error, "reason", "") or error)


class GoogleCalendarClient:
    """Per-request Google Calendar access for a stored user credential"""

    def __init__(self, config: Config = None, credential_store=None):
        self.config = config or Config()
        self.credential_store = credential_store
        self.calendar_id = self.config.CALENDAR_ID

    # --------------------------------------------------------------- oauth

    def _build_flow(self, state: str = None) -> Flow:
        return Flow.from_client_config(
            self.config.get_client_config(),
            scopes=self.config.CALENDAR_SCOPES,
            redirect_uri=self.config.GOOGLE_REDIRECT_URI,
            state=state,
            autogenerate_code_verifier=False,
        )

    def get_auth_url(self, user_id: str) -> str:
        """Consent URL; the chat user id travels in the OAuth state"""
        authorization_url, _ = self._build_flow(state=user_id).authorization_url(
            access_type="offline",
            prompt="consent",
        )
        return authorization_url

    def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange an authorization code for tokens in storage format"""
        logger.info("🔄 Exchanging authorization code for tokens...")
        flow = self._build_flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.error(f"❌ OAuth token exchange failed: {e}")
            raise CalendarProviderError(f"OAuth token exchange failed: {e}")

        credentials = flow.credentials
        if not credentials.token:
            raise CalendarProviderError("access_token missing from Google response")

        expiry_ms = None
        if credentials.expiry:
            expiry_ms = int(credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)

        return {
            "access_token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "expiry_date": expiry_ms,
        }

    # ------------------------------------------------------------- service

    def _google_credentials(self, credential: UserCredential) -> Credentials:
        expiry = None
        if credential.expiry_date:
            # google-auth compares against naive UTC
            expiry = datetime.fromtimestamp(credential.expiry_date / 1000, tz=timezone.utc).replace(tzinfo=None)

        return Credentials(
            token=credential.access_token,
            refresh_token=credential.refresh_token or None,
            token_uri=self.config.GOOGLE_TOKEN_URI,
            client_id=self.config.GOOGLE_CLIENT_ID,
            client_secret=self.config.GOOGLE_CLIENT_SECRET,
            scopes=self.config.CALENDAR_SCOPES,
            expiry=expiry,
        )

    def _refresh_if_expired(self, credential: UserCredential, google_credentials: Credentials):
        if not (google_credentials.expired and google_credentials.refresh_token):
            return

        logger.info(f"🔄 Refreshing expired access token for {credential.user_id}")
        try:
            google_credentials.refresh(Request())
        except RefreshError as e:
            logger.error(f"❌ Token refresh failed for {credential.user_id}: {e}")
            raise NotConnectedError(f"Google authorization expired for {credential.user_id}")
        except TransportError as e:
            raise CalendarProviderError(f"Token refresh failed: {e}")

        expiry_ms = None
        if google_credentials.expiry:
            expiry_ms = int(google_credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)

        credential.access_token = google_credentials.token
        credential.expiry_date = expiry_ms
        if self.credential_store is not None:
            self.credential_store.update_access_token(credential.user_id, google_credentials.token, expiry_ms)

    def _build_calendar_service(self, credential: UserCredential):
        google_credentials = self._google_credentials(credential)
        self._refresh_if_expired(credential, google_credentials)
        return build("calendar", "v3", credentials=google_credentials, cache_discovery=False)

    def _execute(self, action: str, request):
        try:
            return request.execute()
        except HttpError as e:
            message = _http_error_message(e)
            logger.error(f"HTTP error during {action}: {message}")
            raise CalendarProviderError(message, status=getattr(e.resp, "status", None))
        except RefreshError as e:
            raise NotConnectedError(f"Google authorization expired: {e}")
        except (OSError, TransportError) as e:
            logger.error(f"Network error during {action}: {e}")
            raise CalendarProviderError(f"Network error: {e}")

    # ----------------------------------------------------------- calendar

    def query_busy(self, credential: UserCredential, time_min: datetime,
                   time_max: datetime) -> List[BusyInterval]:
        """Busy intervals between time_min and time_max (FreeBusy API)"""
        service = self._build_calendar_service(credential)
        body = {
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "timeZone": self.config.TIMEZONE_NAME,
            "items": [{"id": self.calendar_id}],
        }
        response = self._execute("freebusy query", service.freebusy().query(body=body))

        calendar = response.get("calendars", {}).get(self.calendar_id, {})
        if calendar.get("errors"):
            reasons = ", ".join(err.get("reason", "unknown") for err in calendar["errors"])
            raise CalendarProviderError(f"Free/busy lookup failed: {reasons}")

        busy = [BusyInterval.from_api(slot) for slot in calendar.get("busy", [])]
        logger.info(f"📅 Busy query {body['timeMin']} → {body['timeMax']}: {len(busy)} busy slot(s)")
        return busy

    def insert_event(self, credential: UserCredential, body: Dict[str, Any],
                     send_updates: str = "none") -> Dict[str, Any]:
        service = self._build_calendar_service(credential)
        logger.info(f"📤 Creating calendar event: {body.get('summary')}")
        return self._execute("event insert", service.events().insert(
            calendarId=self.calendar_id, body=body, sendUpdates=send_updates
        ))

    def update_event(self, credential: UserCredential, event_id: str,
                     body: Dict[str, Any]) -> Dict[str, Any]:
        """Patch only the supplied fields of an existing event"""
        service = self._build_calendar_service(credential)
        logger.info(f"✏️ Updating calendar event {event_id}")
        return self._execute("event update", service.events().patch(
            calendarId=self.calendar_id, eventId=event_id, body=body
        ))

    def delete_event(self, credential: UserCredential, event_id: str):
        service = self._build_calendar_service(credential)
        logger.info(f"🗑️ Deleting calendar event {event_id}")
        self._execute("event delete", service.events().delete(
            calendarId=self.calendar_id, eventId=event_id
        ))

    def list_events(self, credential: UserCredential, time_min: datetime, time_max: datetime,
                    max_results: int = 250) -> List[CalendarEvent]:
        service = self._build_calendar_service(credential)
        response = self._execute("event list", service.events().list(
            calendarId=self.calendar_id,
            timeMin=to_rfc3339(time_min),
            timeMax=to_rfc3339(time_max),
            singleEvents=True,
            orderBy="startTime",
            maxResults=max_results,
        ))
        events = []
        for item in response.get("items", []):
            if item.get("status") == "cancelled":
                continue
            events.append(CalendarEvent.from_api(item))
        logger.info(f"Retrieved {len(events)} events between {to_rfc3339(time_min)} and {to_rfc3339(time_max)}")
        return events
