#!/usr/bin/env python3
"""
Create an admin account, or promote an existing user to admin.

    python -m app.users.create_admin --email admin@example.com --name "Admin"
"""
import argparse
import getpass
import sys

from app.database import Base, SessionLocal, engine
from app.security.passwords import hash_password, validate_password
from app.users import crud as user_crud
from app.users.models import ROLE_ADMIN

# register every table on Base.metadata before create_all
from app.audit import models as _audit_models  # noqa: F401
from app.categories import models as _category_models  # noqa: F401
from app.expenses import models as _expense_models  # noqa: F401


def prompt_password() -> str:
    new_pass = getpass.getpass("Enter admin password (hidden): ").strip()
    if not new_pass:
        print("No password entered. Exiting.")
        sys.exit(1)

    errors = validate_password(new_pass)
    if errors:
        print(f"[ERROR] {errors[0]}")
        sys.exit(1)

    new_pass2 = getpass.getpass("Confirm admin password: ").strip()
    if new_pass != new_pass2:
        print("Passwords do not match. Exiting.")
        sys.exit(1)
    return new_pass


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an admin user.")
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument("--name", default="Administrator", help="Display name for a new admin")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = user_crud.get_user_by_email(db, args.email)
        if user:
            if user.role == ROLE_ADMIN:
                print(f"[OK] {user.email} is already an admin.")
                return
            user_crud.update_user(db, user, {"role": ROLE_ADMIN})
            print(f"[OK] {user.email} promoted to admin.")
            return

        password = prompt_password()
        user = user_crud.create_user(
            db,
            email=args.email,
            name=args.name,
            hashed_password=hash_password(password),
            role=ROLE_ADMIN,
        )
        print(f"[OK] Admin {user.email} created.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
