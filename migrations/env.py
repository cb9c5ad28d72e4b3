import importlib
import logging
import os
import pkgutil
from logging.config import fileConfig

from alembic import context
from flask import current_app

config = context.config
if config.config_file_name and os.path.exists(config.config_file_name):
    fileConfig(config.config_file_name)
else:
    logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("alembic.env")

migrate_ext = current_app.extensions["migrate"]
engine = migrate_ext.db.engine
config.set_main_option("sqlalchemy.url", engine.url.render_as_string(hide_password=False).replace("%", "%%"))


def _load_models():
    """Register every fieldservice.models module on the metadata before comparing."""
    import fieldservice.models as pkg
    names = [m.name for m in pkgutil.iter_modules(pkg.__path__)]
    for name in names:
        importlib.import_module(f"fieldservice.models.{name}")
    logger.info("loaded %d model modules", len(names))
    return migrate_ext.db.metadata


# Index drops proposed by autogenerate are skipped unless named here
KEEP_DROPS = {n.strip() for n in os.getenv("ALEMBIC_DROP_INDEX_ALLOWLIST", "").split(",") if n.strip()}


def include_object(obj, name, type_, reflected, compare_to):
    if type_ == "index" and reflected and compare_to is None:
        return name in KEEP_DROPS
    return True


def _skip_empty(ctx, revision, directives):
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected.")


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=_load_models(),
        literal_binds=True,
        compare_type=True,
        include_object=include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    options = dict(migrate_ext.configure_args)
    options.setdefault("process_revision_directives", _skip_empty)
    options.update(
        target_metadata=_load_models(),
        compare_type=True,
        compare_server_default=True,
        include_object=include_object,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **options)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
