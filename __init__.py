"""
Smart Calendar Assistant - a chat scheduling assistant for Zoho Cliq

This package turns chat messages into Google Calendar events:
- Classifies messages so greetings and small talk never reach the calendar
- Extracts event details with an LLM
- Checks availability or searches for a free slot before booking
- Keeps each user's OAuth tokens encrypted at rest
"""

__version__ = "1.0.0"
__author__ = "Smart Calendar Team"
