"""
Validation utilities for the Smart Calendar Assistant
"""
import math
import re
from datetime import date
from typing import Any, Dict, List

from config.settings import Config
from src.scheduler.time_utils import derive_end_time


class RequestValidator:
    """Validator for incoming chat payloads and calendar fields"""

    EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
    TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        if not isinstance(email, str):
            return False
        return bool(RequestValidator.EMAIL_PATTERN.match(email.strip()))

    @staticmethod
    def validate_time_format(value: str) -> bool:
        """HH:MM, 24-hour clock"""
        return isinstance(value, str) and bool(RequestValidator.TIME_PATTERN.match(value))

    @staticmethod
    def validate_date_format(value: str) -> bool:
        """YYYY-MM-DD"""
        try:
            date.fromisoformat(value)
            return True
        except (TypeError, ValueError):
            return False

    @staticmethod
    def filter_emails(candidates: List[str]) -> List[str]:
        """Keep only email-like participants, deduplicated, in order"""
        seen = set()
        emails = []
        for candidate in candidates or []:
            if not RequestValidator.validate_email(candidate):
                continue
            email = DataSanitizer.sanitize_email(candidate)
            if email not in seen:
                seen.add(email)
                emails.append(email)
        return emails

    @staticmethod
    def validate_update_fields(fields: Dict[str, Any]) -> List[str]:
        """Validate an edit-form submission and return list of errors"""
        errors = []

        if "date" in fields and not RequestValidator.validate_date_format(fields["date"]):
            errors.append(f"Invalid date: {fields['date']}. Expected: YYYY-MM-DD")

        for name in ("start_time", "end_time"):
            if name in fields and not RequestValidator.validate_time_format(fields[name]):
                errors.append(f"Invalid {name}: {fields[name]}. Expected: HH:MM")

        if "end_time" in fields and "start_time" not in fields:
            errors.append("end_time requires start_time")

        if ("start_time" in fields or "end_time" in fields) and "date" not in fields:
            errors.append("Changing the time requires a date")

        if "start_time" in fields and "end_time" in fields and not errors:
            if fields["end_time"] <= fields["start_time"]:
                errors.append("end_time must be after start_time")

        if "duration_hours" in fields:
            try:
                duration = float(fields["duration_hours"])
            except (TypeError, ValueError):
                errors.append(f"Invalid duration_hours: {fields['duration_hours']}")
            else:
                if not math.isfinite(duration):
                    errors.append(f"Invalid duration_hours: {fields['duration_hours']}")
                elif duration <= 0:
                    errors.append("duration_hours must be positive")

        if "start_time" in fields and "end_time" not in fields and not errors:
            duration = float(fields.get("duration_hours") or Config.DEFAULT_DURATION_HOURS)
            if derive_end_time(fields["start_time"], duration) <= fields["start_time"]:
                errors.append(f"An event starting at {fields['start_time']} would have no length")

        return errors


class DataSanitizer:
    """Sanitize and clean input data"""

    @staticmethod
    def sanitize_email(email: str) -> str:
        """Sanitize email address"""
        return email.strip().lower()

    @staticmethod
    def sanitize_text(text: Any, max_length: int = None) -> str:
        """Strip markup and script URLs, trim, and cap the length"""
        if not text or not isinstance(text, str):
            return ""
        max_length = max_length or Config.MAX_MESSAGE_LENGTH
        text = re.sub(r'[<>]', '', text)
        text = re.sub(r'javascript:', '', text, flags=re.IGNORECASE)
        return text.strip()[:max_length]
