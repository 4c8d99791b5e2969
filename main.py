#!/usr/bin/env python3
"""
Main entry point for the Smart Calendar Assistant

Runs the chat-platform API server, processes a single message from the
command line, or drives a smoke run against a running server.
"""

import sys
import json
import logging
from pathlib import Path

# Add the project directory to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import Config
from src.api.flask_server import SmartCalendarAPI
from src.scheduler.errors import ConfigurationError
from src.scheduler.smart_scheduler import SmartScheduler
from utils.logger import SmartCalendarLogger

logger = logging.getLogger(__name__)


def _load_config() -> Config:
    """Validated configuration; a misconfigured process refuses to start"""
    config = Config()
    try:
        config.validate()
    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        sys.exit(1)
    return config


def process_message(text, user_id, user_name="User"):
    """Run one chat message through the scheduler and return its response payload"""
    scheduler = SmartScheduler(_load_config())
    outcome = scheduler.handle_message(text, user_id, user_name)
    logger.info(f"Message finished in state {outcome.state.value}")
    return outcome.response


def run_server(host=None, port=None, log_file=None):
    """Run the Flask API server"""
    SmartCalendarLogger.setup_logging(log_level="INFO", log_file=log_file)
    config = _load_config()

    logger.info("Starting Smart Calendar Assistant...")
    try:
        api = SmartCalendarAPI(config)
        api.run(host=host, port=port)
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")


def run_smoke(api_url="http://localhost:3000"):
    """Run the smoke scenarios against a running server"""
    from tests.smoke_client import SmartCalendarSmokeClient

    SmartCalendarLogger.setup_logging(log_level="INFO")
    logger.info(f"Running smoke checks against {api_url}")

    client = SmartCalendarSmokeClient(api_url, app_key=Config.CLIQ_APP_KEY)
    results = client.run_smoke_suite()

    summary = results["summary"]
    print(f"\nSmoke Results:")
    print(f"  Total: {summary['total']}")
    print(f"  Passed: {summary['passed']}")
    print(f"  Failed: {summary['failed']}")
    print(f"  Avg response time: {summary['avg_response_time']:.2f}s")

    return results


def main():
    """Main CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='Smart Calendar Assistant')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    server_parser = subparsers.add_parser('server', help='Run the API server')
    server_parser.add_argument('--host', default=None, help='Host to bind to')
    server_parser.add_argument('--port', type=int, default=None, help='Port to bind to')
    server_parser.add_argument('--log-file', default=None, help='Also log to this file')

    smoke_parser = subparsers.add_parser('smoke', help='Smoke-test a running server')
    smoke_parser.add_argument('--url', default='http://localhost:3000', help='API URL to test')

    process_parser = subparsers.add_parser('process', help='Process a single chat message')
    process_parser.add_argument('text', help='Message text')
    process_parser.add_argument('--user', required=True, help='Chat user id')
    process_parser.add_argument('--name', default='User', help='Chat user name')
    process_parser.add_argument('--output', help='Output JSON file')

    args = parser.parse_args()

    if args.command == 'server':
        run_server(host=args.host, port=args.port, log_file=args.log_file)

    elif args.command == 'smoke':
        results = run_smoke(api_url=args.url)
        sys.exit(0 if results["summary"]["failed"] == 0 else 1)

    elif args.command == 'process':
        SmartCalendarLogger.setup_logging(log_level="INFO")
        result = process_message(args.text, args.user, args.name)

        if args.output:
            with open(args.output, 'w') as f:
                json.dump(result, f, indent=2, ensure_ascii=False)
        else:
            print(json.dumps(result, indent=2, ensure_ascii=False))

    else:
        parser.print_help()


if __name__ == '__main__':
    main()
