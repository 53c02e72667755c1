"""Startup script for deployment.

On a fresh database (no tables), creates all tables from models, stamps
Alembic to head and seeds the demo tasks. On an existing database, runs
Alembic migrations normally.
"""

import subprocess
import sys

from sqlalchemy import inspect

from momentum.db.base import Base
from momentum.db.seed import seed_demo_data
from momentum.db.session import SessionLocal, engine
from momentum.db.store import KeyValueStore
from momentum.models import KeyValueEntry  # noqa: F401


def main():
    inspector = inspect(engine)
    tables = inspector.get_table_names()

    if "kv_entries" not in tables:
        print("Fresh database detected: creating all tables...")
        Base.metadata.create_all(bind=engine)
        print("Tables created. Stamping Alembic to head...")
        subprocess.check_call([sys.executable, "-m", "alembic", "stamp", "head"])
        with SessionLocal() as session:
            seed_demo_data(KeyValueStore(session))
        print("Done.")
    else:
        print("Existing database: running migrations...")
        subprocess.check_call([sys.executable, "-m", "alembic", "upgrade", "head"])
        print("Migrations complete.")


if __name__ == "__main__":
    main()
