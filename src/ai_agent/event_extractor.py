"""
Event extraction through an OpenAI-compatible chat completion API (Perplexity)

The scheduling engine only depends on ``extract(text, context)``: free text in,
an ``EventDraft`` out, or ``ExtractionError`` with a human-readable reason.
"""
import json
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from openai import OpenAI, OpenAIError

from config.settings import Config
from src.scheduler.errors import ExtractionError
from src.scheduler.models import EventDraft, EventType, Priority
from src.scheduler.time_utils import now_local, parse_hhmm, format_hhmm

logger = logging.getLogger(__name__)


@dataclass
class ExtractionContext:
    timezone: str = Config.TIMEZONE_NAME
    work_hours: str = Config.WORK_HOURS
    now: datetime = field(default_factory=now_local)


class EventExtractor:
    """Turns a scheduling request into an EventDraft using the LLM"""

    def __init__(self, config: Config = None, client: OpenAI = None):
        self.config = config or Config()
        self.model_config = self.config.get_model_config()

        self.client = client if client is not None else OpenAI(
            api_key=self.config.PERPLEXITY_API_KEY,
            base_url=self.model_config["base_url"],
            timeout=self.config.LLM_TIMEOUT,
            max_retries=self.config.LLM_MAX_RETRIES,
        )

        logger.info(f"Initialized event extractor: {self.model_config['model']}")

    def _build_prompt(self, context: ExtractionContext) -> str:
        today = context.now.date()
        return self.config.EXTRACTION_PROMPT.format(
            today=today.isoformat(),
            tomorrow=(today + timedelta(days=1)).isoformat(),
            day_of_week=context.now.strftime("%A"),
            current_time=context.now.strftime("%H:%M"),
            timezone=context.timezone,
            work_hours=context.work_hours,
        )

    def _make_completion_request(self, system_prompt: str, user_message: str) -> str:
        start_time = time.time()
        try:
            response = self.client.chat.completions.create(
                model=self.model_config["model"],
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self.model_config["temperature"],
                max_tokens=self.model_config["max_tokens"],
            )
        except OpenAIError as e:
            logger.error(f"Extraction request failed: {e}")
            raise ExtractionError(f"Failed to process with AI: {e}")

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        logger.info(f"Extraction response in {time.time() - start_time:.2f}s")
        logger.debug(f"Raw extraction response: {content}")
        return content

    def extract(self, text: str, context: ExtractionContext = None) -> EventDraft:
        context = context or ExtractionContext()
        raw = self._make_completion_request(self._build_prompt(context), text)
        if not raw:
            raise ExtractionError("Empty response from AI")

        data = self._extract_json(raw)
        if data is None:
            raise ExtractionError("Could not parse AI response", raw_response=raw)

        draft = self.build_draft(data)
        logger.info(f"✅ Extracted event: {draft.title} on {draft.date_str} at {draft.time or 'unspecified time'}")
        return draft

    # ------------------------------------------------------------ parsing

    def _extract_json(self, response: str) -> Optional[Dict[str, Any]]:
        """Extract a JSON object, tolerating markdown fences and chatter"""
        strategies = [
            lambda r: json.loads(self._strip_code_fences(r)),
            lambda r: self._extract_json_by_braces(r),
        ]

        for strategy in strategies:
            try:
                result = strategy(response)
                if isinstance(result, dict):
                    return result
            except (json.JSONDecodeError, ValueError) as e:
                logger.debug(f"JSON extraction strategy failed: {e}")
                continue

        return None

    @staticmethod
    def _strip_code_fences(response: str) -> str:
        cleaned = response.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        return cleaned.strip()

    @staticmethod
    def _extract_json_by_braces(response: str) -> Optional[Dict[str, Any]]:
        """Extract JSON by finding balanced braces"""
        start = response.find('{')
        if start == -1:
            return None

        brace_count = 0
        for i, char in enumerate(response[start:], start):
            if char == '{':
                brace_count += 1
            elif char == '}':
                brace_count -= 1
                if brace_count == 0:
                    return json.loads(response[start:i + 1])
        return None

    def build_draft(self, data: Dict[str, Any]) -> EventDraft:
        """Validate raw extractor fields; title and date are mandatory"""
        title = str(data.get("title") or "").strip()
        raw_date = str(data.get("date") or "").strip()
        if not title or not raw_date:
            raise ExtractionError("Missing required fields (title or date)", raw_response=json.dumps(data))

        try:
            event_date = date.fromisoformat(raw_date)
        except ValueError:
            raise ExtractionError(f"Invalid date from AI: {raw_date}", raw_response=json.dumps(data))

        participants = data.get("participants") or []
        if isinstance(participants, str):
            participants = [p.strip() for p in participants.split(",")]

        return EventDraft(
            title=title,
            date=event_date,
            time=self._clean_time(data.get("time")),
            duration_hours=self._clean_duration(data.get("duration")),
            type=self._clean_enum(EventType, data.get("type"), EventType.MEETING),
            priority=self._clean_enum(Priority, data.get("priority"), Priority.MEDIUM),
            participants=[str(p).strip() for p in participants if str(p).strip()],
            description=str(data.get("description") or "").strip(),
            flexible=self._clean_bool(data.get("flexible")),
        )

    @staticmethod
    def _clean_time(value: Any) -> Optional[str]:
        if value in (None, "", "null"):
            return None
        try:
            return format_hhmm(*parse_hhmm(str(value)))
        except ValueError:
            logger.warning(f"Ignoring unparseable time from AI: {value!r}")
            return None

    def _clean_duration(self, value: Any) -> float:
        try:
            duration = float(value)
        except (TypeError, ValueError):
            return self.config.DEFAULT_DURATION_HOURS
        if not math.isfinite(duration) or duration <= 0 or duration > 24:
            return self.config.DEFAULT_DURATION_HOURS
        return duration

    @staticmethod
    def _clean_enum(enum_cls, value: Any, default):
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError:
            return default

    @staticmethod
    def _clean_bool(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)

