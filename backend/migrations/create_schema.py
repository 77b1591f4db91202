from __future__ import annotations

"""Create every campus scheduling table from the model metadata.

Safe to run multiple times; existing tables are left alone.
"""

import argparse
import logging
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import settings
from core.database import ENGINE, build_engine
from core.logging import setup_logging
from models import Base


logger = logging.getLogger("migrations.create_schema")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="Target database (defaults to DATABASE_URL from the environment / backend/.env)",
    )
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first (destroys data)")
    args = parser.parse_args()

    setup_logging(environment=settings.environment)
    engine = build_engine(args.database_url) if args.database_url else ENGINE

    if args.drop:
        logger.warning("Dropping all tables on %s", engine.url.render_as_string(hide_password=True))
        Base.metadata.drop_all(engine)

    Base.metadata.create_all(engine)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    main()
