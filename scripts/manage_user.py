from __future__ import annotations

import argparse

from sqlalchemy import select

import dovi.models  # noqa: F401
from dovi.db.session import SessionLocal
from dovi.models.enums import UserRole
from dovi.models.users import User


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Change a user's role or email activation.")
    parser.add_argument("email")
    parser.add_argument("--role", choices=[r.value for r in UserRole])
    parser.add_argument("--activate-email", action="store_true")
    parser.add_argument("--deactivate", action="store_true", help="block the account")
    args = parser.parse_args(argv)

    if not (args.role or args.activate_email or args.deactivate):
        parser.error("nothing to change")

    db = SessionLocal()
    try:
        user = db.scalar(select(User).where(User.email == args.email.lower()))
        if not user:
            print("User not found")
            return 1
        if args.role:
            user.role = args.role
        if args.activate_email:
            user.is_email_activated = True
        if args.deactivate:
            user.is_active = False
        db.commit()
        print(
            f"Updated {user.email}: role={user.role} email_activated={user.is_email_activated} active={user.is_active}"
        )
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
