"""
Initialize database schema via SQLAlchemy models.

Usage:
  python scripts/init_db.py --db path/to/examnexus.db
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

load_dotenv(ROOT_DIR / ".env")

from app import create_app, db  # noqa: E402


def _normalize_db_uri(db_value: str | None) -> str | None:
    if not db_value:
        return None
    if "://" in db_value:
        return db_value
    path = Path(db_value).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize SQLite schema.")
    parser.add_argument("--db", help="Path to sqlite db file.")
    parser.add_argument(
        "--config",
        default="default",
        help="Config name: development|production|testing|default",
    )
    args = parser.parse_args()

    db_uri = _normalize_db_uri(args.db)
    app = create_app(args.config, db_uri_override=db_uri)
    with app.app_context():
        db.create_all()
    print("Schema initialized.")


if __name__ == "__main__":
    main()
