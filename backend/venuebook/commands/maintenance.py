#!/usr/bin/env python
# backend/venuebook/commands/maintenance.py
"""
Booking maintenance commands.

Meant to be run by an external scheduler; each invocation does one pass.

Usage:
    python -m venuebook.commands.maintenance sweep        # Expire unpaid bookings
    python -m venuebook.commands.maintenance reminders    # Send preparation reminders
    python -m venuebook.commands.maintenance init-db      # Create missing tables
"""

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.logging import setup_logging
from ..database import SessionLocal, init_db
from ..services.booking_maintenance_service import BookingMaintenanceService
from ..services.cache_service import CacheService
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class MaintenanceCommand:
    """Maintenance command handler."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory

    def _service(self, db: Session) -> BookingMaintenanceService:
        return BookingMaintenanceService(
            db, cache=CacheService(), notifications=NotificationService()
        )

    def sweep(self) -> Dict[str, Any]:
        db = self.session_factory()
        try:
            expired = self._service(db).sweep_expired_bookings()
            return {"expired": [booking.id for booking in expired]}
        finally:
            db.close()

    def reminders(self) -> Dict[str, Any]:
        db = self.session_factory()
        try:
            reminded = self._service(db).collect_preparation_reminders()
            return {"reminded": [booking.id for booking in reminded]}
        finally:
            db.close()

    def init_db(self) -> Dict[str, Any]:
        init_db()
        return {"status": "ok"}


def main(argv: Optional[List[str]] = None, command: Optional[MaintenanceCommand] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Venue booking maintenance commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("sweep", help="Expire pending bookings past their payment deadline")
    subparsers.add_parser("reminders", help="Send preparation reminders for upcoming bookings")
    subparsers.add_parser("init-db", help="Create missing database tables")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    cmd = command or MaintenanceCommand()
    handlers = {
        "sweep": cmd.sweep,
        "reminders": cmd.reminders,
        "init-db": cmd.init_db,
    }
    try:
        result = handlers[args.command]()
    except Exception:
        logger.exception(f"Maintenance command {args.command} failed")
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
