#!/usr/bin/env python3
"""Create an admin account for the moderation console."""

import argparse
import getpass
import sys

from goodmap.auth.password import password_manager
from goodmap.core.config import settings
from goodmap.core.database import Base, build_engine, build_session_factory
from goodmap.models import User


def create_admin(session_factory, email: str, password: str) -> bool:
    """Insert an admin user. Returns False when the email is already taken."""
    db = session_factory()
    try:
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            print(f"User with email {email} already exists.")
            return False

        user = User(
            email=email,
            hashed_password=password_manager.hash_password(password),
            is_admin=True,
        )
        db.add(user)
        db.commit()
        print(f"Admin user created successfully: {user.email}")
        return True
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Admin login email")
    parser.add_argument("--password", help="Admin password (prompted when omitted)")
    parser.add_argument("--database-url", default=settings.database_url, help="Override DATABASE_URL")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("Password must not be empty.", file=sys.stderr)
        return 1

    engine = build_engine(args.database_url)
    Base.metadata.create_all(bind=engine)
    try:
        create_admin(build_session_factory(engine), args.email, password)
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
