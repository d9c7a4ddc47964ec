"""PRDForge ``init`` command.

Creates the ``.prdforge/`` directory in the target project and writes a
default configuration file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from prdforge.cli.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE, default_config_toml
from prdforge.cli.errors import CLIError

RESPONSES_DIR = "responses"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_project_structure(project_dir: Path) -> list[Path]:
    """Create the .prdforge directory tree, returning paths created."""
    base = project_dir / DEFAULT_CONFIG_DIR
    created: list[Path] = []
    for d in (base, base / RESPONSES_DIR):
        if not d.exists():
            d.mkdir(parents=True, exist_ok=True)
            created.append(d)
    return created


def _write_default_config(project_dir: Path, *, force: bool = False) -> Path:
    """Write the default config.toml, returning the path."""
    config_path = project_dir / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE
    if config_path.exists() and not force:
        raise CLIError(
            f"Configuration already exists: {config_path}\n"
            "Use --force to overwrite it."
        )
    config_path.write_text(default_config_toml(), encoding="utf-8")
    return config_path


# ---------------------------------------------------------------------------
# Command implementation (called from app.py)
# ---------------------------------------------------------------------------


def run_init(path: Optional[Path] = None, *, force: bool = False) -> Path:
    """Execute the init command logic.

    Parameters
    ----------
    path:
        Target directory.  Defaults to current working directory.
    force:
        Overwrite an existing ``config.toml``.

    Returns
    -------
    Path
        The config file that was written.
    """
    project_dir = (path or Path.cwd()).resolve()

    if not project_dir.exists():
        raise CLIError(f"Directory does not exist: {project_dir}")

    if not project_dir.is_dir():
        raise CLIError(f"Not a directory: {project_dir}")

    _create_project_structure(project_dir)
    return _write_default_config(project_dir, force=force)
