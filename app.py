#!/usr/bin/env python3
"""
Run script for the procurement service
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before the app reads its configuration
load_dotenv()

from procurement import create_app  # noqa: E402
from procurement.build import build_database  # noqa: E402
from procurement.logger import get_logger  # noqa: E402

logger = get_logger("procurement.run")


def parse_arguments():
    parser = argparse.ArgumentParser(description='Site material procurement service')
    parser.add_argument('--build-only', action='store_true',
                        help='Create tables and seed the first manager, then exit')
    parser.add_argument('--seed-demo', action='store_true',
                        help='Insert demo sites, vendors, inventory and users (needs DEMO_USER_PASSWORD)')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()
    app = create_app()

    build_database(seed_demo=args.seed_demo, app=app)

    if args.build_only:
        logger.info("Build completed. Exiting without starting web server.")
        sys.exit(0)

    # FLASK_DEBUG: Enable/disable debug mode (default: False for security)
    debug_mode = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes', 'on')
    use_reloader = os.environ.get('USE_RELOADER', 'False').lower() in ('true', '1', 'yes', 'on')
    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader)
