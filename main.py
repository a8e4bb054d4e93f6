#!/usr/bin/env python3
"""
DoseWise - camera-based medication adherence tracker.
Main entry point for the detection session.

Usage:
    python main.py [options]

Examples:
    # Run with the default webcam and the persisted classifier
    python main.py

    # Load a classifier and start detecting immediately
    python main.py --classifier weights/pills-cls.pt --start

    # Show the annotated camera window
    python main.py --display
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.app.DoseWiseApp import DoseWiseApp
from dosewise.config.adherence_config import AdherenceConfig
from dosewise.config.settings import AppConfig
from dosewise.constants import classifier_source_key
from dosewise.logging.Database import DatabaseManager
from dosewise.utils.AppLogging import logger, reconfigure_console_level


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="DoseWise medication adherence session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --source 0 --start
  python main.py --classifier https://example.org/pills-cls.pt
        """
    )

    parser.add_argument(
        '--source', '-s',
        default=None,
        help='Camera source: camera index (0), file path or stream URL'
    )

    parser.add_argument(
        '--classifier', '-c',
        type=str,
        help='Classifier weights path or URL (persisted for later sessions)'
    )

    parser.add_argument(
        '--start',
        action='store_true',
        help='Start detection as soon as the session is ready'
    )

    parser.add_argument(
        '--display',
        action='store_true',
        help='Show the annotated camera window'
    )

    parser.add_argument(
        '--confidence',
        type=float,
        default=None,
        help='Confidence threshold (default: 0.75)'
    )

    parser.add_argument(
        '--database',
        type=str,
        default=None,
        help='Path to SQLite database file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show DEBUG messages on the console'
    )

    parser.add_argument(
        '--max-seconds',
        type=float,
        default=None,
        help='Stop after this many seconds (for testing)'
    )

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()
    if args.verbose:
        reconfigure_console_level(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("DoseWise")
    logger.info("=" * 60)

    app_config = AppConfig()
    adherence_config = AdherenceConfig()

    if args.source is not None:
        app_config.camera_source = int(args.source) if args.source.isdigit() else args.source
    if args.database:
        app_config.db_path = args.database
    if args.display:
        app_config.enable_display = True
    if args.confidence is not None:
        adherence_config.confidence_threshold = args.confidence

    app_config.log_configuration()
    adherence_config.log_configuration()

    db = DatabaseManager(app_config.db_path)
    if args.classifier:
        # Startup loads whatever source is persisted
        db.set_blob(classifier_source_key, args.classifier.strip())

    app = DoseWiseApp(app_config=app_config, adherence_config=adherence_config, db=db)

    try:
        app.run(start_detection=args.start, max_seconds=args.max_seconds)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
