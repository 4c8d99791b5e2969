"""
Flask API server for the Smart Calendar Assistant
"""
import hashlib
import hmac
import logging
import signal
import sys
import time
from datetime import datetime
from functools import wraps
from threading import Thread

from flask import Flask, jsonify, redirect, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config.settings import Config
from src.api import responses
from src.scheduler.command_handlers import CommandHandlers
from src.scheduler.errors import CalendarProviderError
from src.scheduler.smart_scheduler import SmartScheduler
from utils.logger import SmartCalendarLogger
from utils.validators import DataSanitizer

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Catalyst-Signature"

CONNECTED_PAGE = """<!DOCTYPE html>
<html>
<head><title>Calendar Connected</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; padding-top: 80px;">
  <div style="font-size: 60px;">✅</div>
  <h1>Calendar Connected!</h1>
  <p>Your Google Calendar is now connected.</p>
  <p><strong>Go back to Zoho Cliq and start scheduling!</strong></p>
  <p style="color: #999;">You can close this window now.</p>
</body>
</html>"""


def compute_signature(key: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw request body"""
    return hmac.new(key.encode("utf-8"), body, hashlib.sha256).hexdigest()


class SmartCalendarAPI:
    """
    Flask surface for the chat platform: bot messages, slash commands,
    widget actions and the Google OAuth round trip
    """

    def __init__(self, config: Config = None, scheduler: SmartScheduler = None):
        self.config = config or Config()
        self.app = Flask(__name__)
        CORS(self.app)

        self.scheduler = scheduler if scheduler is not None else SmartScheduler(self.config)
        self.commands = CommandHandlers(self.scheduler)

        self._setup_routes()

    # ---------------------------------------------------------- security

    def verify_cliq_request(self, view):
        """Reject calls whose X-Catalyst-Signature does not match the body"""

        @wraps(view)
        def wrapper(*args, **kwargs):
            app_key = self.config.CLIQ_APP_KEY
            if not app_key:
                logger.error("CLIQ_APP_KEY not configured")
                return jsonify({"error": "Server configuration error"}), 500

            signature = request.headers.get(SIGNATURE_HEADER)
            if not signature:
                if self.config.ENVIRONMENT == "development":
                    logger.warning("Development mode: skipping signature verification")
                    return view(*args, **kwargs)
                logger.error("No signature in request")
                return jsonify({"error": "Unauthorized: Missing signature"}), 401

            expected = compute_signature(app_key, request.get_data())
            if not hmac.compare_digest(signature, expected):
                logger.error("Invalid signature")
                return jsonify({"error": "Unauthorized: Invalid signature"}), 401

            return view(*args, **kwargs)

        return wrapper

    # ------------------------------------------------------------ routes

    def _setup_routes(self):
        """Setup Flask routes"""
        app = self.app
        verified = self.verify_cliq_request

        @app.route('/health', methods=['GET'])
        def health_check():
            return jsonify({
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "environment": self.config.ENVIRONMENT,
            })

        @app.route('/connect-calendar', methods=['GET'])
        def connect_calendar():
            user_id = request.args.get("user_id", "").strip()
            if not user_id:
                return "❌ Missing user_id", 400
            logger.info(f"🔗 Connect request for user {user_id}")
            return redirect(self.scheduler.calendar.get_auth_url(user_id))

        @app.route('/oauth/callback', methods=['GET'])
        def oauth_callback():
            code = request.args.get("code")
            user_id = request.args.get("state")
            if not code or not user_id:
                return "❌ Missing authorization code or user id", 400

            try:
                tokens = self.scheduler.calendar.exchange_code(code)
            except CalendarProviderError as e:
                return f"❌ Failed to connect calendar: {e}", 400

            self.scheduler.credential_store.save(user_id, tokens)
            logger.info(f"✅ Calendar connected for user: {user_id}")
            return CONNECTED_PAGE

        @app.route('/bot', methods=['POST'])
        @verified
        def bot_message():
            start_time = time.time()
            data = request.get_json(silent=True) or {}
            user = data.get("user") or {}
            user_id = str(user.get("id") or "unknown")
            user_name = DataSanitizer.sanitize_text(user.get("name")) or "User"
            text = DataSanitizer.sanitize_text(data.get("text"))

            logger.info(f"📨 Bot message from {user_id} ({user_name}): {text[:50]}")
            outcome = self.scheduler.handle_message(text, user_id, user_name)

            SmartCalendarLogger.log_request_response(
                user_id, "/bot", outcome.state.value, outcome.response, time.time() - start_time
            )
            return jsonify(outcome.response)

        @app.route('/command/today', methods=['POST'])
        @verified
        def command_today():
            data = request.get_json(silent=True) or {}
            return jsonify(self.commands.today(str(data.get("userId", ""))))

        @app.route('/command/week', methods=['POST'])
        @verified
        def command_week():
            data = request.get_json(silent=True) or {}
            return jsonify(self.commands.week(str(data.get("userId", ""))))

        @app.route('/command/delete', methods=['POST'])
        @verified
        def command_delete():
            data = request.get_json(silent=True) or {}
            arguments = DataSanitizer.sanitize_text(data.get("arguments"))
            return jsonify(self.commands.delete(str(data.get("userId", "")), arguments))

        @app.route('/command/update', methods=['POST'])
        @verified
        def command_update():
            data = request.get_json(silent=True) or {}
            arguments = DataSanitizer.sanitize_text(data.get("arguments"))
            return jsonify(self.commands.update(str(data.get("userId", "")), arguments))

        @app.route('/widget/today', methods=['POST'])
        @verified
        def widget_today():
            data = request.get_json(silent=True) or {}
            user_id = str(data.get("userId") or "unknown")
            logger.info(f"📊 Widget {data.get('eventType', 'load')} from user: {user_id}")
            return jsonify(self.commands.today_widget(user_id))

        @app.route('/widget/start-edit', methods=['POST'])
        @verified
        def widget_start_edit():
            data = request.get_json(silent=True) or {}
            user_id, event_id = data.get("userId"), data.get("eventId")
            if not user_id or not event_id:
                return jsonify(responses.widget_failure("userId and eventId are required")), 400
            token = self.scheduler.start_edit(str(user_id), str(event_id))
            return jsonify({"success": True, "token": token})

        @app.route('/calendar/update', methods=['POST'])
        @verified
        def calendar_update():
            data = request.get_json(silent=True) or {}
            fields = {
                name: value for name, value in (
                    ("summary", DataSanitizer.sanitize_text(data.get("summary"))),
                    ("date", data.get("date")),
                    ("start_time", data.get("startTime")),
                    ("end_time", data.get("endTime")),
                    ("duration_hours", data.get("durationHours")),
                ) if value not in (None, "")
            }
            outcome = self.scheduler.submit_edit(str(data.get("userId", "")), fields, token=data.get("token"))
            return jsonify(outcome.response)

        @app.route('/calendar/delete', methods=['POST'])
        @verified
        def calendar_delete():
            data = request.get_json(silent=True) or {}
            if not data.get("eventId"):
                return jsonify(responses.widget_failure("eventId is required")), 400
            outcome = self.scheduler.delete_event(str(data.get("userId", "")), str(data["eventId"]))
            return jsonify(outcome.response)

        @app.errorhandler(404)
        def not_found(error):
            logger.warning(f"404: {request.method} {request.path}")
            return jsonify({"error": "Endpoint not found"}), 404

        @app.errorhandler(Exception)
        def unexpected_error(error):
            if isinstance(error, HTTPException):
                return jsonify({"error": error.description}), error.code
            logger.exception(f"Unhandled error on {request.path}: {error}")
            return jsonify(responses.internal_error()), 500

    # --------------------------------------------------------------- run

    def _setup_signal_handlers(self):
        """Setup graceful shutdown handlers"""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down gracefully...")
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def run(self, host=None, port=None, debug=False):
        """Run the Flask server"""
        host = host or self.config.API_HOST
        port = port or self.config.API_PORT

        self._setup_signal_handlers()
        logger.info(f"Starting Smart Calendar API server on {host}:{port} ({self.config.ENVIRONMENT})")
        self.app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)

    def run_background(self, host=None, port=None):
        """Run the Flask server in a daemon thread"""
        server_thread = Thread(target=self.app.run, kwargs={
            "host": host or self.config.API_HOST,
            "port": port or self.config.API_PORT,
            "threaded": True,
            "use_reloader": False,
        }, daemon=True)
        server_thread.start()
        logger.info("Flask server started in background")
        return server_thread


def create_app(config: Config = None, scheduler: SmartScheduler = None) -> Flask:
    """Factory function to create Flask app"""
    return SmartCalendarAPI(config, scheduler).app
