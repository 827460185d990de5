"""
Centralized logging configuration for the Live Location Tracker.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import get_config


DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s'
SIMPLE_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = True
    _level = logging.INFO

    # Component definitions with their log levels
    COMPONENTS = {
        'api': {'level': logging.INFO, 'file': 'api.log'},
        'registry': {'level': logging.INFO, 'file': 'registry.log'},
        'sweep': {'level': logging.INFO, 'file': 'sweep.log'},
        'middleware': {'level': logging.INFO, 'file': 'middleware.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(cls, log_dir: Optional[str] = None, debug: Optional[bool] = None) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components. Defaults to config.server.debug
        """
        if cls._initialized:
            return

        config = get_config()
        if debug is None:
            debug = config.server.debug

        cls._to_file = config.app.log_to_file
        cls._level = logging.DEBUG if debug else logging.getLevelName(config.app.log_level.upper())
        if not isinstance(cls._level, int):
            cls._level = logging.INFO

        session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
        if cls._to_file:
            base_dir = Path(log_dir) if log_dir else Path(config.app.log_dir)

            # Each server session gets its own subdirectory
            cls._log_dir = base_dir / session_dir
            cls._log_dir.mkdir(parents=True, exist_ok=True)

            with open(cls._log_dir / "session_info.txt", 'w', encoding='utf-8') as f:
                f.write(f"Session started: {datetime.now().isoformat()}\n")
                f.write(f"Debug mode: {debug}\n")
                f.write("Config:\n")
                f.write(f"  Inactivity timeout: {config.registry.inactivity_timeout_secs}s\n")
                f.write(f"  Abandonment multiplier: {config.registry.abandonment_multiplier}\n")
                f.write(f"  Sweep interval: {config.registry.sweep_interval_secs}s\n")
                f.write(f"  Log directory: {cls._log_dir}\n")

        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if debug else component_config['level']
            cls._loggers[component_name] = cls._build_logger(
                component_name, level, component_config['file']
            )

        if cls._to_file:
            # Create a unified log file for all components
            unified_logger = logging.getLogger('location_tracker.unified')
            unified_logger.handlers.clear()
            unified_logger.setLevel(cls._level)
            unified_logger.propagate = False

            unified_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / 'unified.log',
                maxBytes=20 * 1024 * 1024,  # 20MB
                backupCount=3,
                encoding='utf-8'
            )
            unified_handler.setLevel(cls._level)
            unified_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            unified_logger.addHandler(unified_handler)
            cls._loggers['unified'] = unified_logger

            for name, logger in cls._loggers.items():
                if name != 'unified':
                    logger.addHandler(unified_handler)

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        main_logger = cls._loggers['main']
        main_logger.info("Live Location Tracker logging initialized")
        if cls._log_dir:
            main_logger.info(f"Log directory: {cls._log_dir}")

    @classmethod
    def _build_logger(cls, component: str, level: int, file_name: str) -> logging.Logger:
        logger = logging.getLogger(f"location_tracker.{component}")

        # Clear existing handlers
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(level)

        if cls._to_file:
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / file_name,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            logger.addHandler(file_handler)

        # Without log files everything goes to the console; otherwise only errors do
        if not cls._to_file or component in ('error', 'main'):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level if not cls._to_file else logging.ERROR)
            console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
            logger.addHandler(console_handler)

        return logger

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (api, registry, sweep, ...) or a module
                      path like 'location_tracker.registry.sweeper'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        component = cls._component_for(component)
        if component not in cls._loggers:
            cls._create_component_logger(component)
        return cls._loggers[component]

    @staticmethod
    def _component_for(name: str) -> str:
        """Map a module path to its component name."""
        if not name.startswith('location_tracker.'):
            return name

        parts = name.split('.')
        if parts[1] == 'registry':
            return 'sweep' if parts[-1] == 'sweeper' else 'registry'
        if parts[1] == 'api':
            return 'middleware' if parts[-1] == 'middleware' else 'api'
        return 'main'

    @classmethod
    def _create_component_logger(cls, component: str) -> None:
        """Create a component logger on-demand."""
        logger = cls._build_logger(component, cls._level, f'{component}.log')

        unified = cls._loggers.get('unified')
        if unified is not None:
            for handler in unified.handlers:
                logger.addHandler(handler)

        cls._loggers[component] = logger

    @classmethod
    def log_exception(cls, component: str, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger('error')

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        exc_info = (type(exc), exc, exc.__traceback__)
        component_logger.error(f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc_info)
        if error_logger is not component_logger:
            error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc_info)

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(log_dir: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug)


def log_exception(component: str, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
