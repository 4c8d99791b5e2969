"""
Logging utilities for the Smart Calendar Assistant
"""
import logging
import sys
from datetime import datetime
import json


class SmartCalendarLogger:
    """Logging setup shared by the server and the CLI"""

    @staticmethod
    def setup_logging(log_level: str = "INFO", log_file: str = None):
        """Setup logging configuration"""

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Setup root logger
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper()))

        # Clear existing handlers
        root_logger.handlers.clear()

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        # File handler (if specified)
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        # Suppress some noisy loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('googleapiclient').setLevel(logging.WARNING)
        logging.getLogger('httpx').setLevel(logging.WARNING)

        return root_logger

    @staticmethod
    def log_request_response(user_id: str, endpoint: str, state: str,
                             response_data: dict, processing_time: float):
        """Log a one-line summary of a handled chat request (never the tokens)"""
        logger = logging.getLogger(__name__)

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "user_id": user_id,
            "endpoint": endpoint,
            "state": state,
            "processing_time_seconds": round(processing_time, 3),
            "response_summary": {
                "has_card": "card" in response_data,
                "text_preview": str(response_data.get("text", ""))[:80],
            },
        }

        logger.info(f"Request processed: {json.dumps(log_entry)}")
