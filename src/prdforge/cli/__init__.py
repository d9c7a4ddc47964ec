"""PRDForge CLI – command-line interface built with Typer and Rich.

- :data:`app` – The main Typer application
- :class:`PrdForgeConfig` – Configuration model
- :func:`setup_logging` – Logging infrastructure
- :class:`CLIError` – Structured error handling
"""

from prdforge.cli.app import app
from prdforge.cli.config import PrdForgeConfig, load_config
from prdforge.cli.errors import CLIError, ConfigError, error_handler
from prdforge.cli.logging_setup import setup_logging

__all__ = [
    "CLIError",
    "ConfigError",
    "PrdForgeConfig",
    "app",
    "error_handler",
    "load_config",
    "setup_logging",
]
