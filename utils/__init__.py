"""
Utility modules for Smart Calendar Assistant
"""

from .logger import SmartCalendarLogger
from .validators import RequestValidator, DataSanitizer
from .encryption import TokenCipher

__all__ = ['SmartCalendarLogger', 'RequestValidator', 'DataSanitizer', 'TokenCipher']
