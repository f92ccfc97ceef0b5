from typing import Any, Dict, Optional
import logging
import sys

from .config import Config
from .db import close_db, init_db

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class StudyPalApp:
    def __init__(self, config_path: Optional[str] = None, db_url: Optional[str] = None, watch_config: Optional[bool] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._handlers = []

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()

        # Initialize database before any router touches it
        init_db(self.config.data, db_url=db_url)

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        log_config = self.config.data.get("logging") or {}
        root_logger.setLevel(getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = log_config.get("file")
        if log_file:
            try:
                file_handler = logging.FileHandler(log_file)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
                self._handlers.append(file_handler)
            except OSError as e:
                self.logger.warning(f"Cannot open log file {log_file}: {e}")

        # Console handler unless basic logging already installed one
        if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
                   for h in root_logger.handlers):
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)
            self._handlers.append(console_handler)

        logging.info("StudyPal starting...")

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Re-apply logging settings; everything else is read per request or at startup."""
        self.logger.info("Handling config change")
        try:
            self._setup_logging()
        except Exception as e:
            self.logger.error(f"Error handling config change: {e}", exc_info=True)

    def shutdown(self) -> None:
        self.config.cleanup()
        close_db()
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def run(self):
        from studypal.api.server import run_api_server

        try:
            run_api_server(self)
        finally:
            self.shutdown()
