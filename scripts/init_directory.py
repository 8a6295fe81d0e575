"""
init_directory.py — Create the directory tables, install roles, seed a user.

Creates every table, installs the default role bundles and, when asked,
adds a user carrying an ID number and prints an access token for them.

Example:
    python scripts/init_directory.py \
        --login jdoe --email jdoe@example.com --id-number ABC123 \
        --role administrator --token
"""

from __future__ import annotations

import argparse
import sys

from wrdsb_rest.core.config import settings
from wrdsb_rest.core.database import SessionLocal, init_db
from wrdsb_rest.core.logging import configure_logging, get_logger
from wrdsb_rest.core.security import create_access_token, hash_password
from wrdsb_rest.models import User, UserRole
from wrdsb_rest.services import UserDirectory, install_roles
from wrdsb_rest.utils.sanitize import sanitize_slug, sanitize_user

logger = get_logger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Create directory tables, install default roles and optionally seed a user"
    )
    parser.add_argument("--login", type=str, help="Login name of the user to seed")
    parser.add_argument("--email", type=str, help="Email address of the user to seed")
    parser.add_argument("--id-number", type=str, help="Institutional ID number for the user")
    parser.add_argument("--password", type=str, default="", help="Initial password")
    parser.add_argument(
        "--role",
        action="append",
        default=None,
        help="Role to assign (repeatable, default: subscriber)",
    )
    parser.add_argument("--token", action="store_true", help="Print an access token for the user")

    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)

    init_db()

    db = SessionLocal()
    try:
        install_roles(db)

        if args.login:
            if not args.email:
                parser.error("--email is required with --login")

            directory = UserDirectory(db)
            login = sanitize_user(args.login, strict=True)
            user = directory.get_by_login(login)
            if user is None:
                user = User(
                    user_login=login,
                    user_email=args.email,
                    user_nicename=sanitize_slug(login),
                    display_name=login,
                    nickname=login,
                    user_pass=hash_password(args.password) if args.password else "",
                )
                roles = args.role or ["subscriber"]
                user.role_assignments = [UserRole(role=r, position=i) for i, r in enumerate(roles)]
                db.add(user)
                db.flush()
                logger.info("Created user %s (%s)", user.id, login)
            else:
                logger.info("User %s already exists as id %s", login, user.id)

            if args.id_number:
                directory.update_meta(user, settings.ID_NUMBER_META_KEY, args.id_number)

            db.commit()

            if args.token:
                print(create_access_token({"sub": str(user.id)}))
        else:
            db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Directory initialisation failed: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
