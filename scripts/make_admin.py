"""
Promote a user to admin, creating the account when it does not exist yet.
Run: python -m scripts.make_admin admin@example.com --password 'S3curePassw0rd'
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.db.models.enums import UserRole
from app.db.models.user import User
from app.core.security import hash_password
from app.schemas.auth import validate_password_bytes
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def make_admin(email: str, password: str = None, first_name: str = "Admin", last_name: str = "User") -> bool:
    """Create or update `email` with role=admin."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()

        if not user:
            if not password:
                logger.error(f"User {email} not found and no password provided. Cannot create user.")
                return False

            validate_password_bytes(password)
            logger.info(f"Creating new admin user: {email}")
            user = User(
                email=email.strip().lower(),
                first_name=first_name,
                last_name=last_name,
                password_hash=hash_password(password),
                role=UserRole.ADMIN.value,
            )
            db.add(user)
        else:
            logger.info(f"Found existing user: {email} (ID: {user.id})")
            user.role = UserRole.ADMIN.value

        db.commit()
        logger.info(f"User {email} is now an admin")
        return True

    except ValueError as e:
        logger.error(f"Invalid password: {e}")
        return False
    except Exception as e:
        db.rollback()
        logger.error(f"Error promoting user: {e}", exc_info=True)
        return False
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--password", help="Required when the account does not exist yet")
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    args = parser.parse_args(argv)

    init_db()
    if make_admin(args.email, args.password, args.first_name, args.last_name):
        print(f"\n[SUCCESS] {args.email} is now an admin")
        return 0
    print(f"\n[ERROR] Failed to promote {args.email}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
