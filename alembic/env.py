import logging
from logging.config import fileConfig
import sys
from pathlib import Path

from alembic import context

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from database import Base, Database  # noqa: E402
import models  # noqa: E402,F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")


def _database_url() -> str:
    # `alembic -x url=...` targets another store without touching the env
    override = context.get_x_argument(as_dictionary=True).get("url")
    if override:
        return override
    from config import get_settings

    return get_settings().database_url


DATABASE_URL = _database_url()
# SQLite cannot ALTER constraints in place; batch mode rebuilds the table
AS_BATCH = DATABASE_URL.startswith("sqlite")
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=AS_BATCH,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    db = Database(DATABASE_URL)
    try:
        with db.engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                render_as_batch=AS_BATCH,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        db.dispose()


logger.info(f"migrating: store={DATABASE_URL.split('@')[-1]} batch={AS_BATCH}")
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
