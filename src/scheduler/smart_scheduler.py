"""
Smart Scheduler - Main orchestrator for the scheduling assistant
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from config.settings import Config
from src.ai_agent.event_extractor import EventExtractor, ExtractionContext
from src.ai_agent.intent_classifier import Intent, IntentClassifier
from src.api import responses
from src.calendar.google_calendar import GoogleCalendarClient
from src.scheduler.availability_checker import AvailabilityChecker
from src.scheduler.errors import (
    AvailabilityQueryError, ExtractionError, MutationError, NotConnectedError,
    SchedulingError, SessionExpiredError
)
from src.scheduler.event_mutator import EventMutator
from src.scheduler.models import EventDraft, UserCredential
from src.scheduler.slot_finder import SlotFinder
from src.scheduler.time_utils import derive_end_time, to_minutes
from src.storage.credential_store import CredentialStore
from src.storage.edit_sessions import EditSessionStore
from utils.validators import RequestValidator

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    REJECTED = "rejected"
    AWAITING_CONNECTION = "awaiting_connection"
    EXTRACTING = "extracting"
    EXTRACTION_FAILED = "extraction_failed"
    SLOT_SEARCH = "slot_search"
    AVAILABILITY_CHECK = "availability_check"
    CONFLICT = "conflict"
    AVAILABILITY_FAILED = "availability_failed"
    MUTATING = "mutating"
    DONE = "done"
    MUTATION_FAILED = "mutation_failed"
    SESSION_EXPIRED = "session_expired"


@dataclass
class SchedulingOutcome:
    state: RequestState
    response: Dict[str, Any]
    path: List[RequestState] = field(default_factory=list)
    error: Optional[SchedulingError] = None
    event_id: Optional[str] = None


class _Trace:
    """Records the states one request moves through"""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.path = [RequestState.RECEIVED]

    def to(self, state: RequestState):
        logger.info(f"[{self.user_id}] {self.path[-1].value} → {state.value}")
        self.path.append(state)

    def finish(self, state: RequestState, response: Dict[str, Any], error: SchedulingError = None,
               event_id: str = None) -> SchedulingOutcome:
        self.to(state)
        return SchedulingOutcome(state=state, response=response, path=list(self.path),
                                 error=error, event_id=event_id)


class SmartScheduler:
    """
    Main scheduling coordinator.

    Each inbound message runs the state machine from scratch:
    classify, require a connected calendar, extract a draft, find a slot when
    the draft has no time, re-check the slot and create the event. Every
    recoverable error ends in one terminal state with one response. Only the
    edit session carries state between messages.
    """

    def __init__(self, config: Config = None, credential_store: CredentialStore = None,
                 calendar=None, extractor: EventExtractor = None,
                 classifier: IntentClassifier = None, edit_sessions: EditSessionStore = None):
        self.config = config or Config()

        self.credential_store = credential_store if credential_store is not None else CredentialStore(self.config)
        self.calendar = calendar if calendar is not None else GoogleCalendarClient(self.config, self.credential_store)
        self.extractor = extractor if extractor is not None else EventExtractor(self.config)
        self.classifier = classifier if classifier is not None else IntentClassifier()
        if edit_sessions is None:
            edit_sessions = EditSessionStore(self.config.EDIT_SESSION_TTL_SECONDS)
        self.edit_sessions = edit_sessions

        self.slot_finder = SlotFinder(self.calendar, self.config)
        self.availability_checker = AvailabilityChecker(self.calendar)
        self.mutator = EventMutator(self.calendar, self.config)

        logger.info("SmartScheduler initialized")

    # ------------------------------------------------------------ messages

    def handle_message(self, text: str, user_id: str, user_name: str = "User") -> SchedulingOutcome:
        """Main entry point for a chat message"""
        trace = _Trace(user_id)

        intent = self.classifier.classify(text)
        trace.to(RequestState.CLASSIFIED)
        logger.info(f"[{user_id}] intent: {intent.value}")

        if intent != Intent.SCHEDULING_REQUEST:
            return trace.finish(RequestState.REJECTED, self._rejection(intent, user_name))

        credential = self.credential_store.get(user_id)
        if credential is None:
            return self._awaiting_connection(trace)

        trace.to(RequestState.EXTRACTING)
        try:
            draft = self.extractor.extract(text, ExtractionContext(
                timezone=self.config.TIMEZONE_NAME, work_hours=self.config.WORK_HOURS
            ))
        except ExtractionError as e:
            logger.warning(f"[{user_id}] extraction failed: {e.reason}")
            return trace.finish(RequestState.EXTRACTION_FAILED, responses.extraction_failed(e.reason), error=e)

        try:
            return self._schedule(trace, credential, draft)
        except NotConnectedError as e:
            return self._awaiting_connection(trace, error=e)

    def _rejection(self, intent: Intent, user_name: str) -> Dict[str, Any]:
        if intent == Intent.GREETING:
            return responses.greeting(user_name)
        if intent == Intent.GRATITUDE:
            return responses.gratitude()
        if intent == Intent.SMALL_TALK:
            return responses.small_talk()
        if intent == Intent.AMBIGUOUS:
            return responses.ambiguous()
        return responses.not_scheduling_request()

    def _awaiting_connection(self, trace: _Trace, error: SchedulingError = None) -> SchedulingOutcome:
        logger.info(f"[{trace.user_id}] calendar not connected")
        return trace.finish(
            RequestState.AWAITING_CONNECTION,
            responses.connect_calendar(self.config.connect_url(trace.user_id)),
            error=error or NotConnectedError(f"User {trace.user_id} has not connected Google Calendar"),
        )

    def _schedule(self, trace: _Trace, credential: UserCredential, draft: EventDraft) -> SchedulingOutcome:
        if not draft.time:
            trace.to(RequestState.SLOT_SEARCH)
            try:
                slot = self.slot_finder.find_free_slot(
                    credential, draft.date, draft.duration_hours, self.config.WORK_HOURS
                )
            except AvailabilityQueryError as e:
                return trace.finish(RequestState.AVAILABILITY_FAILED, responses.availability_failed(str(e)), error=e)
            if slot is None:
                return trace.finish(RequestState.CONFLICT, responses.no_free_slot(draft, self.config.WORK_HOURS))
            draft = draft.with_time(slot)

        end_time = derive_end_time(draft.time, draft.duration_hours)
        if to_minutes(end_time) <= to_minutes(draft.time):
            error = ExtractionError(f"No time left in the day after {draft.time}")
            return trace.finish(RequestState.EXTRACTION_FAILED, responses.no_time_left(draft), error=error)

        trace.to(RequestState.AVAILABILITY_CHECK)
        try:
            availability = self.availability_checker.check_availability(
                credential, draft.date, draft.time, end_time
            )
        except AvailabilityQueryError as e:
            return trace.finish(RequestState.AVAILABILITY_FAILED, responses.availability_failed(str(e)), error=e)

        if not availability.available:
            return trace.finish(RequestState.CONFLICT, responses.conflict(draft, availability.busy_slots))

        trace.to(RequestState.MUTATING)
        try:
            result = self.mutator.create(credential, draft)
        except MutationError as e:
            return trace.finish(RequestState.MUTATION_FAILED, responses.mutation_failed(e.action, e.detail), error=e)

        return trace.finish(
            RequestState.DONE,
            responses.success_card(draft, result.event_link, result.end_time),
            event_id=result.event_id,
        )

    # ------------------------------------------------------- widget actions

    def start_edit(self, user_id: str, event_id: str) -> str:
        """Open an edit session; the returned token may be echoed on submit"""
        self.edit_sessions.purge_expired()
        return self.edit_sessions.start(user_id, event_id)

    def submit_edit(self, user_id: str, fields: Dict[str, Any], token: str = None) -> SchedulingOutcome:
        """Apply an edit-form submission to the event of the user's edit session"""
        trace = _Trace(user_id)

        try:
            event_id = self.edit_sessions.resolve(user_id, token)
        except SessionExpiredError as e:
            logger.info(f"[{user_id}] {e}")
            return trace.finish(
                RequestState.SESSION_EXPIRED,
                responses.widget_failure("No edit session found. Please try again."),
                error=e,
            )

        errors = RequestValidator.validate_update_fields(fields)
        if errors:
            return trace.finish(RequestState.REJECTED, responses.widget_failure("; ".join(errors)))

        credential = self.credential_store.get(user_id)
        if credential is None:
            return trace.finish(RequestState.AWAITING_CONNECTION, responses.widget_failure("Not authenticated"),
                                error=NotConnectedError(f"User {user_id} has not connected Google Calendar"))

        trace.to(RequestState.MUTATING)
        try:
            result = self.mutator.update(credential, event_id, fields)
        except NotConnectedError as e:
            return trace.finish(RequestState.AWAITING_CONNECTION, responses.widget_failure("Not authenticated"),
                                error=e)
        except MutationError as e:
            return trace.finish(RequestState.MUTATION_FAILED, responses.widget_failure(e.detail), error=e)

        self.edit_sessions.clear(user_id)
        return trace.finish(
            RequestState.DONE,
            responses.widget_success("Task updated successfully", eventId=result.event_id),
            event_id=result.event_id,
        )

    def delete_event(self, user_id: str, event_id: str) -> SchedulingOutcome:
        trace = _Trace(user_id)

        credential = self.credential_store.get(user_id)
        if credential is None:
            return trace.finish(RequestState.AWAITING_CONNECTION, responses.widget_failure("Not authenticated"),
                                error=NotConnectedError(f"User {user_id} has not connected Google Calendar"))

        trace.to(RequestState.MUTATING)
        try:
            self.mutator.delete(credential, event_id)
        except NotConnectedError as e:
            return trace.finish(RequestState.AWAITING_CONNECTION, responses.widget_failure("Not authenticated"),
                                error=e)
        except MutationError as e:
            return trace.finish(RequestState.MUTATION_FAILED, responses.widget_failure(e.detail), error=e)

        return trace.finish(RequestState.DONE, responses.widget_success("Task deleted successfully"),
                            event_id=event_id)
