"""
Create a local account (e.g. the account whose email is set as ADMIN_EMAIL). Run from project root:
  python -m langualegacy.scripts.create_user USERNAME EMAIL PASSWORD [--first-name NAME] [--last-name NAME]
Example:
  python -m langualegacy.scripts.create_user amara amara@example.org your-secure-password
"""
import argparse
import sys

from langualegacy.core.database import session_scope
from langualegacy.core.security import (
    EMAIL_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
)
from langualegacy.services.errors import AuthError
from langualegacy.services.identity import register


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a LanguaLegacy local account.")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    args = parser.parse_args(argv)

    username = args.username.strip()
    email = args.email.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not email or len(email) > EMAIL_MAX_LEN:
        print("Invalid email length.", file=sys.stderr)
        return 1
    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    try:
        with session_scope() as db:
            user = register(
                db,
                username=username,
                email=email,
                password=args.password,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            print(f"Created user '{user.username}' ({user.email}) with id {user.id}.")
        return 0
    except AuthError as e:
        print(e.message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
