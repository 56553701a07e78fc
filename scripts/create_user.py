#!/usr/bin/env python3
"""
Create a canteen user account.

Usage:
    python scripts/create_user.py --name "Jane Doe" --email jane@example.com --password secret
"""

import argparse
import sys

from canteen.backend.database import Base, SessionLocal, engine
from canteen.backend.services.accounts import create_user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a canteen user account")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        try:
            user = create_user(
                db, name=args.name, email=args.email, password=args.password
            )
        except ValueError as exc:
            print(f"✗ {exc}", file=sys.stderr)
            return 1
        print(f"✓ created user {user.id} <{user.email}>")
    return 0


if __name__ == "__main__":
    sys.exit(main())
