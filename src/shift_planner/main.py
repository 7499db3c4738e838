"""
Main Entry Point for Shift Planner

Loads a tenant data file, prints the weekly dashboard and optionally
sends pending shift notifications.
"""

import argparse
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from shift_planner.data_manager import DEFAULT_DATA_FILE, DataManager
from shift_planner.reporting import DashboardReport
from shift_planner.schedule_engine import LoggingDispatcher, ScheduleEngine


def setup_logging():
    """Setup application logging"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"shift_planner_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


class ShiftPlannerApp:
    """Main application class"""

    def __init__(self, data_file: str):
        self.logger = logging.getLogger(__name__)
        self.data_file = DataManager.resolve_data_file(data_file)
        self.data_manager = None
        self.engine = None
        self.report = None

    def initialize(self):
        """Initialize application components"""
        try:
            self.logger.info("Initializing Shift Planner")

            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self.data_manager = DataManager(str(self.data_file))
            self.logger.info(f"Data manager initialized with {self.data_file}")

            self.engine = ScheduleEngine(self.data_manager)
            self.report = DashboardReport(self.data_manager)
            return True

        except Exception as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def run(self, notify: bool = False):
        if not self.initialize():
            return False

        print(self.report.create_dashboard_summary())

        if notify:
            count = self.engine.notify_employees(LoggingDispatcher())
            self.engine.persist()
            print(f"\nSent {count} shift notifications")
        return True


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Shift Planner dashboard")
    parser.add_argument("--data-file", default=DEFAULT_DATA_FILE,
                        help="Tenant data file (default: %(default)s)")
    parser.add_argument("--notify", action="store_true",
                        help="Send pending shift notifications and clear them")
    args = parser.parse_args(argv)

    sys.excepthook = handle_exception

    logger = setup_logging()
    logger.info("=" * 50)
    logger.info("Starting Shift Planner")
    logger.info("=" * 50)

    app = ShiftPlannerApp(args.data_file)
    success = app.run(notify=args.notify)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
