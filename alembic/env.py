from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

try:
    from catalog.config import settings
    from catalog.schemas.models import Base
except ImportError as e:
    raise ImportError(f"Could not import catalog modules: {type(e).__name__}")

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_database_url():
    base_url = settings.alembic_database_url

    if settings.db_ssl_mode != "disable":
        separator = "&" if "?" in base_url else "?"
        base_url += f"{separator}sslmode={settings.db_ssl_mode}"

    return base_url


def include_name(name, type_, parent_names):
    if type_ == "schema":
        return name == "catalog"
    return True


def run_migrations_offline() -> None:
    url = get_database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        include_name=include_name,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_database_url()

    connect_args = {}
    connect_args["options"] = "-c statement_timeout=60000 -c search_path=public"

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            include_schemas=True,
            include_name=include_name,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
