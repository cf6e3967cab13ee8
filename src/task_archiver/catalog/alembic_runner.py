"""Run the catalog schema migrations from code."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

# src/task_archiver/catalog/ -> project root holding alembic.ini and alembic/
PROJECT_ROOT = Path(__file__).resolve().parents[3]


def catalog_migration_config(db_path: Path, *, project_root: Path = PROJECT_ROOT) -> Config:
    """Alembic config pointed at the catalog database.

    alembic.ini is optional; only the script location and URL are required.
    """

    ini_path = project_root / "alembic.ini"
    config = Config(str(ini_path)) if ini_path.is_file() else Config()
    config.set_main_option("script_location", str(project_root / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def upgrade_head(db_path: Path) -> None:
    command.upgrade(catalog_migration_config(db_path), "head")
