#!/usr/bin/env python3
"""
Wait for the database, run migrations, seed, then exec uvicorn on the app factory.
"""
import os
import sys

# 1) Wait for DB (postgres only)
from busbooking.core.config import get_settings

settings = get_settings()
if settings.DATABASE_URL.startswith("postgresql"):
    import wait_for_db  # noqa: F401

# 2) Run migrations using the same settings as the app
from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# 3) Seed
if os.getenv("SEED_ON_START", "1") == "1":
    from busbooking.core.logging import setup_logging
    from busbooking.db.session import init_engine
    from busbooking.seed import run as run_seed

    setup_logging(settings.LOG_LEVEL)
    engine = init_engine(settings)
    run_seed()
    engine.dispose()

# 4) Start uvicorn (replace current process)
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "busbooking.main:create_app", "--factory",
     "--host", "0.0.0.0", "--port", os.getenv("PORT", "8000")],
)
