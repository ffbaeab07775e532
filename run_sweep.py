"""
Run one top sweep and exit (for cron instead of the in-process scheduler)

Usage:
    python run_sweep.py
"""
import logging
import sys

from topledger.application.tops import sweep_expired_tops
from topledger.infrastructure.db.session import get_session_factory

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> int:
    db = get_session_factory()()
    try:
        closed = sweep_expired_tops(db)
    except Exception:
        logger.exception("Top sweep failed")
        return 1
    finally:
        db.close()
    print(f"Completed {closed} top(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
