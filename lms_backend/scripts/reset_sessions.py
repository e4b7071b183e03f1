#!/usr/bin/env python3
"""
Ends every active session from the command line, the same work as POST /cron/daily-reset.

Usage:
  python -m lms_backend.scripts.reset_sessions
"""

import logging
import sys
from datetime import datetime, timezone

from lms_backend.core.database import SessionLocal
from lms_backend.services import session_manager

logger = logging.getLogger(__name__)


def run_reset(db) -> dict:
    cleaned_up = session_manager.cleanup_scheduled_logouts(db)
    reset = session_manager.reset_all_sessions(db)
    return {"cleaned_up_count": cleaned_up, "reset_count": reset}


def main() -> int:
    db = SessionLocal()
    try:
        counts = run_reset(db)
    except Exception as e:
        logger.error(f"Error resetting sessions: {e}", exc_info=True)
        return 1
    finally:
        db.close()

    print(f"Cleaned up {counts['cleaned_up_count']} scheduled logouts")
    print(f"Reset {counts['reset_count']} user sessions")
    print(f"Timestamp: {datetime.now(timezone.utc).isoformat()}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
