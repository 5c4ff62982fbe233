"""CLI script to seed users, block lists and product listings into the database.

The seed file is a JSON object with ``users`` (each with a ``key``, optional
``blocked`` list of other keys) and ``products`` (each naming its ``owner`` key).
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed marketplace users and products into the local database."
    )
    parser.add_argument(
        "--seed",
        required=True,
        type=Path,
        help="Path to the seed JSON with 'users' and 'products' lists",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL env var for this import run.",
    )
    parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Append to the current database instead of recreating the tables.",
    )
    return parser.parse_args()


def ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


def main() -> None:
    args = parse_args()
    ensure_backend_on_path()

    if args.database_url:
        os.environ["DATABASE_URL"] = args.database_url

    from barter.core.config import settings
    from barter.db.session import Base, SessionLocal, engine
    from barter.ingest.service import import_dataset, load_payload, reset_database

    payload = load_payload(args.seed)

    if args.keep_existing:
        Base.metadata.create_all(bind=engine)
    else:
        reset_database(engine)

    with SessionLocal() as session:
        summary = import_dataset(session, payload)

    print(
        f"Imported {summary.users} users, {summary.products} products and "
        f"{summary.blocks} blocks into {settings.database_url}"
    )


if __name__ == "__main__":
    main()
