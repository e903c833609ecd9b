"""Main entry point for Sales Tracker."""

from __future__ import annotations

import logging
import sys

from salestracker.core.config import get_config_dir, get_settings
from salestracker.db.session import init_database
from salestracker.web.server import WebServer, create_app


def setup_exception_handler() -> None:
    """Set up global exception handler for unhandled exceptions."""
    logger = logging.getLogger(__name__)

    def handle_exception(exc_type, exc_value, exc_traceback):
        """Handle uncaught exceptions."""
        if issubclass(exc_type, KeyboardInterrupt):
            # Allow Ctrl+C to exit normally
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    log_dir = get_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "tracker.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def main() -> int:
    """Application entry point."""
    settings = get_settings()
    setup_logging("DEBUG" if settings.debug_mode else settings.log_level)
    setup_exception_handler()
    logger = logging.getLogger(__name__)

    logger.info("Starting Sales Tracker")
    logger.info(f"Config dir: {get_config_dir()}")
    logger.info(
        f"Shipping per unit: {settings.settlement.shipping_per_unit}, "
        f"payment method fallback: {settings.settlement.payment_method_fallback}"
    )

    # Initialize database
    try:
        init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.exception("Failed to initialize database")
        print(f"Error: Failed to initialize database: {e}", file=sys.stderr)
        return 1

    server = WebServer(settings.web.host, settings.web.port, app=create_app(settings=settings))
    url = server.start()
    print(f"Sales Tracker API running at {url} (Ctrl+C to stop)")

    try:
        server.join()
    except KeyboardInterrupt:
        server.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
