#!/usr/bin/env python3
"""Print a storable PBKDF2 hash for seeding credentials by hand."""

from __future__ import annotations

import argparse
import getpass
import sys

from homeservices.auth.validators import password_problem
from homeservices.core.security import hash_password, verify_password


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Hash a password the same way the API stores credentials."
    )
    parser.add_argument(
        "--password",
        default="",
        help="Password to hash; prompted for when omitted.",
    )
    parser.add_argument(
        "--allow-weak",
        action="store_true",
        help="Skip the registration password policy check.",
    )
    parser.add_argument(
        "--verify",
        default="",
        help="Instead of hashing, check --password against this stored hash.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("Empty password.", file=sys.stderr)
        return 2

    if args.verify:
        ok = verify_password(password, args.verify)
        print("match" if ok else "mismatch")
        return 0 if ok else 1

    problem = password_problem(password)
    if problem and not args.allow_weak:
        print(f"Password rejected by policy: {problem}", file=sys.stderr)
        return 2
    print(hash_password(password))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
