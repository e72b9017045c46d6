from logging.config import fileConfig

from sqlalchemy import pool, engine_from_config

from alembic import context

from core.config import settings
from db import Base
from models.user import User  # noqa: F401
from models.tournament import Tournament  # noqa: F401
from models.participant import Participant  # noqa: F401
from models.payment import Payment  # noqa: F401
from models.reminder import Reminder  # noqa: F401
from models.website_order import WebsiteOrder  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401
from models.notification import Notification  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
