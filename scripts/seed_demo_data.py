#!/usr/bin/env python3
"""
Operational Excellence Manager — Demo Data Seed Script.

Loads four elements with processes, steps, decision outcomes, measures in
every scorecard category, strategic goals and element metrics.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --reset     # drop + recreate tables first
    flask seed-demo                              # same data via the app CLI
"""

import argparse
import sys

sys.path.insert(0, ".")

from app import create_app  # noqa: E402
from app.models import db  # noqa: E402
from app.services.demo_seed import seed_demo_data  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Seed demo OE framework data")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables")
    args = parser.parse_args()

    app = create_app()
    print(f"DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        if args.reset:
            db.drop_all()
        db.create_all()
        created = seed_demo_data()
        db.session.commit()

    if created:
        for name, count in created.items():
            print(f"  {name:<10} {count}")
    else:
        print("Elements already present; nothing seeded (use --reset).")


if __name__ == "__main__":
    main()
