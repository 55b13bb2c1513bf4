"""
Create an active local user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [role] [--email EMAIL]
Example:
  python -m app.scripts.create_user admin 'Str0ng-Passphrase!' admin --email admin@example.com
"""
import argparse
import logging
import sys

from app.core.database import SessionLocal
from app.models.user import ROLES, STATUS_ACTIVE
from app.services.errors import UserConflictError, WeakPasswordError
from app.services.local_auth import create_local_user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create an active RedTeam Collab account, bypassing the approval queue."
    )
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("password", help="Password (12-128 chars, mixed case, digit, symbol)")
    parser.add_argument("role", nargs="?", default="analyst", choices=list(ROLES))
    parser.add_argument("--email", default=None)
    parser.add_argument("--first-name", default="")
    parser.add_argument("--last-name", default="")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    username = args.username.strip()
    if not username or len(username) > 255:
        print("Invalid username length.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        create_local_user(
            db,
            username=username,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
            role=args.role,
            status=STATUS_ACTIVE,
        )
    except WeakPasswordError as e:
        print("Password rejected:", file=sys.stderr)
        for problem in e.errors:
            print(f"  - {problem}", file=sys.stderr)
        return 1
    except UserConflictError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{username}' with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
