"""
Configuration settings for the Smart Calendar Assistant
"""
import os
from pathlib import Path
from typing import Dict, List
from urllib.parse import quote

from dotenv import load_dotenv

from src.scheduler.errors import ConfigurationError

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent


class Config:
    # Token encryption (AES-256 needs exactly 32 characters)
    ENCRYPTION_KEY = os.environ.get("ENCRYPTION_KEY", "")
    ENCRYPTION_KEY_LENGTH = 32

    # Credential storage
    USERS_FILE = os.environ.get("USERS_FILE", str(PROJECT_ROOT / "data" / "users.json"))

    # Google OAuth / Calendar
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URI = os.environ.get("GOOGLE_REDIRECT_URI", "http://localhost:3000/oauth/callback")
    GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
    GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
    CALENDAR_SCOPES = [
        "https://www.googleapis.com/auth/calendar",
        "https://www.googleapis.com/auth/calendar.events",
    ]
    CALENDAR_ID = os.environ.get("CALENDAR_ID", "primary")
    DEFAULT_TOKEN_LIFETIME_MS = 3600 * 1000

    # Perplexity (OpenAI-compatible chat completions)
    PERPLEXITY_API_KEY = os.environ.get("PERPLEXITY_API_KEY", "")
    PERPLEXITY_BASE_URL = os.environ.get("PERPLEXITY_BASE_URL", "https://api.perplexity.ai")
    EXTRACTION_MODEL = os.environ.get("EXTRACTION_MODEL", "sonar")
    LLM_TIMEOUT = 20
    LLM_MAX_RETRIES = 0  # every failure is reported once
    MAX_TOKENS = 500
    TEMPERATURE = 0.2

    # Timezone: a single fixed offset
    TIMEZONE = "+05:30"
    TIMEZONE_NAME = "Asia/Kolkata"

    # Scheduling
    WORK_HOURS = os.environ.get("WORK_HOURS", "09:00-18:00")
    SLOT_STEP_MINUTES = 30
    REMINDER_MINUTES = (30, 10)
    DEFAULT_DURATION_HOURS = 1.0
    EDIT_SESSION_TTL_SECONDS = int(os.environ.get("EDIT_SESSION_TTL_SECONDS", "900"))

    # Chat platform
    CLIQ_APP_KEY = os.environ.get("CLIQ_APP_KEY", "")
    ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000")
    MAX_MESSAGE_LENGTH = 1000
    MIN_MESSAGE_LENGTH = 3

    # API Configuration
    API_HOST = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT = int(os.environ.get("API_PORT", "3000"))

    REQUIRED_SETTINGS = [
        "ENCRYPTION_KEY",
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
        "PERPLEXITY_API_KEY",
        "CLIQ_APP_KEY",
    ]

    EXTRACTION_PROMPT = """You are an intelligent calendar assistant that extracts structured event information from natural language.

Current Context:
- Today's Date: {today} ({day_of_week})
- Current Time: {current_time}
- User Timezone: {timezone}
- Work Hours: {work_hours}

Your task: Extract event details and return a JSON object with these fields:
{{
  "title": "string - event name/title",
  "date": "YYYY-MM-DD - calculated date",
  "time": "HH:MM - 24-hour format, or null if the user gave no time",
  "duration": "number - hours (default: 1 for meetings, 2 for tasks)",
  "type": "meeting|task|focus_block|reminder",
  "priority": "low|medium|high|urgent",
  "participants": ["email1", "email2"],
  "description": "string - any additional context",
  "flexible": "boolean - can this be rescheduled if needed?"
}}

Date interpretation rules:
- "today" = {today}
- "tomorrow" = {tomorrow}
- "next Monday" = next occurring Monday from today
- "this Friday" = upcoming Friday this week
- "in 3 days" = calculate from today

Time interpretation:
- "morning" = 10:00
- "afternoon" = 14:00
- "evening" = 18:00
- No time mentioned = null (a free slot will be found automatically)

Return ONLY valid JSON, no markdown or explanation."""

    @classmethod
    def get_model_config(cls) -> Dict[str, object]:
        """Get extraction model configuration"""
        return {
            "base_url": cls.PERPLEXITY_BASE_URL,
            "model": cls.EXTRACTION_MODEL,
            "max_tokens": cls.MAX_TOKENS,
            "temperature": cls.TEMPERATURE,
        }

    @classmethod
    def get_client_config(cls) -> Dict[str, Dict[str, object]]:
        """OAuth client config in the shape google-auth-oauthlib expects"""
        return {
            "web": {
                "client_id": cls.GOOGLE_CLIENT_ID,
                "client_secret": cls.GOOGLE_CLIENT_SECRET,
                "auth_uri": cls.GOOGLE_AUTH_URI,
                "token_uri": cls.GOOGLE_TOKEN_URI,
                "redirect_uris": [cls.GOOGLE_REDIRECT_URI],
            }
        }

    def missing_settings(self) -> List[str]:
        return [name for name in self.REQUIRED_SETTINGS if not getattr(self, name)]

    def validate(self):
        """Raise ConfigurationError if a required setting is absent"""
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        if len(self.ENCRYPTION_KEY) != self.ENCRYPTION_KEY_LENGTH:
            raise ConfigurationError(
                f"ENCRYPTION_KEY must be exactly {self.ENCRYPTION_KEY_LENGTH} characters"
            )

    def connect_url(self, user_id: str) -> str:
        return f"{self.PUBLIC_BASE_URL}/connect-calendar?user_id={quote(user_id)}"
