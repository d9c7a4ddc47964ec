"""PRDForge CLI configuration management.

Loads configuration from TOML files with environment variable overrides
(``PRDFORGE_`` prefix).  Uses :mod:`tomllib` on Python 3.11+.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from prdforge.cli.errors import ConfigError
from prdforge.generators.models import GeneratorConfig
from prdforge.llm.models import GatewayConfig
from prdforge.recovery.pipeline import FailurePolicy

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_DIR = ".prdforge"
DEFAULT_CONFIG_FILE = "config.toml"
ENV_PREFIX = "PRDFORGE_"

# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class PrdForgeConfig(BaseModel):
    """Application configuration with sensible defaults.

    All fields can be overridden via environment variables with the
    ``PRDFORGE_`` prefix.  For example ``PRDFORGE_LLM_PROVIDER=anthropic``.
    """

    project_dir: Path = Field(default_factory=lambda: Path.cwd())
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    failure_policy: FailurePolicy = FailurePolicy.EMPTY
    max_features: int = Field(default=20, gt=0)
    max_tasks: int = Field(default=15, gt=0)

    model_config = {"extra": "ignore"}

    def gateway_config(self) -> GatewayConfig:
        """Gateway settings with this config's provider as the default."""
        return GatewayConfig(default_provider=self.llm_provider)

    def generator_config(self, model: str | None = None) -> GeneratorConfig:
        """Generator settings, optionally overriding the configured model."""
        return GeneratorConfig(
            model=model or self.llm_model,
            failure_policy=self.failure_policy,
        )


# ---------------------------------------------------------------------------
# Loader helpers
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: dict) -> dict:
    """Apply PRDFORGE_ environment variable overrides to *data*."""
    field_names = set(PrdForgeConfig.model_fields.keys())
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            field = key[len(ENV_PREFIX):].lower()
            if field in field_names:
                data[field] = value
    return data


def load_config(config_path: Path | None = None, project_dir: Path | None = None) -> PrdForgeConfig:
    """Load configuration from a TOML file with env-var overrides.

    Parameters
    ----------
    config_path:
        Explicit path to a TOML file.  When *None*, looks for
        ``<project_dir>/.prdforge/config.toml``.
    project_dir:
        Project root directory.  Defaults to :func:`Path.cwd`.

    Returns
    -------
    PrdForgeConfig
        Parsed and validated configuration.

    Raises
    ------
    ConfigError
        If the file is not valid TOML or a value fails validation.
    """
    project = project_dir or Path.cwd()
    path = config_path or (project / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE)

    data: dict = {}
    if path.exists():
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    # Flatten nested TOML sections if present
    flat: dict = {}
    for k, v in data.items():
        if isinstance(v, dict):
            flat.update(v)
        else:
            flat[k] = v

    # Always set project_dir from argument / cwd
    flat.setdefault("project_dir", str(project))

    flat = _apply_env_overrides(flat)
    try:
        return PrdForgeConfig(**flat)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def default_config_toml() -> str:
    """Return default configuration as a TOML string."""
    return """\
# PRDForge configuration

[general]
llm_provider = "openai"
llm_model = "gpt-4o-mini"
log_level = "INFO"

[generation]
# "empty" treats unparseable LLM output as no records; "raise" fails the command
failure_policy = "empty"
max_features = 20
max_tasks = 15
"""
