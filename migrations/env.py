from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

from ttfb_monitor.lib.config import Settings
from ttfb_monitor.lib.database import Base, create_lakebase_engine, get_lakebase_connection_string
from ttfb_monitor.models import TtfbSample  # noqa: F401  registers the table on Base.metadata

# Load environment variables from .env.local
load_dotenv(dotenv_path='.env.local')

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

settings = Settings.from_env()


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Emits SQL for DATABASE_URL, or the Lakebase connection string when it is
    not set.
    """
    url = config.get_main_option("sqlalchemy.url") or settings.database_url or get_lakebase_connection_string()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    DATABASE_URL wins when set; otherwise connects to Lakebase with a
    credential generated through the Databricks SDK.
    """
    url = config.get_main_option("sqlalchemy.url") or settings.database_url
    if url:
        connectable = create_engine(url, poolclass=pool.NullPool)
    else:
        connectable = create_lakebase_engine(pool_size=1, max_overflow=0)

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
