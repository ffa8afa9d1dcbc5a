import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, create_engine

from busbooking.core.config import get_settings
from busbooking.db.session import Base

# Import all models so Alembic sees them in metadata
from busbooking.models.user import User  # noqa: F401
from busbooking.models.route import Route  # noqa: F401
from busbooking.models.bus import Bus  # noqa: F401
from busbooking.models.schedule import Schedule  # noqa: F401
from busbooking.models.booking import Booking  # noqa: F401
from busbooking.models.audit_log import AuditLog  # noqa: F401
from busbooking.models.email_log import EmailLog  # noqa: F401


# Alembic Config object
config = context.config

# An explicit sqlalchemy.url (set by start_api.py) wins; otherwise use the app settings.
db_url = config.get_main_option("sqlalchemy.url") or os.getenv("DATABASE_URL") or get_settings().DATABASE_URL
config.set_main_option("sqlalchemy.url", db_url)

# Logging config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    url = config.get_main_option("sqlalchemy.url")
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=url.startswith("sqlite"),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
