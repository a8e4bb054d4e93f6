#!/usr/bin/env python3
"""
DoseWise dashboard launcher.

The dashboard reads the same SQLite file and session snapshot as the
detection session started by main.py. Both paths are resolved here from
AppConfig (or the flags) and exported as DB_PATH / SESSION_STATE_FILE, so
uvicorn workers and reload subprocesses see the same files.
"""

import argparse
import os
import sys

import uvicorn

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.config.settings import AppConfig
from dosewise.utils.AppLogging import logger


def configure_paths(database=None, state_file=None):
    """Export the session's file locations for the server process."""
    app_config = AppConfig()
    db_path = os.path.abspath(database or app_config.db_path)
    state_path = os.path.abspath(state_file or app_config.session_state_file)
    os.environ["DB_PATH"] = db_path
    os.environ["SESSION_STATE_FILE"] = state_path
    return db_path, state_path


def main():
    parser = argparse.ArgumentParser(description="DoseWise dashboard")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8000)
    parser.add_argument('--reload', action='store_true', help='Auto-reload on code changes')
    parser.add_argument('--database', default=None, help='SQLite file shared with main.py')
    parser.add_argument('--state-file', default=None, help='Session snapshot written by main.py')
    args = parser.parse_args()

    db_path, state_path = configure_paths(args.database, args.state_file)
    logger.info(f"[Dashboard] http://{args.host}:{args.port} (db={db_path}, state={state_path})")

    uvicorn.run(
        "dosewise.endpoint.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == '__main__':
    main()
