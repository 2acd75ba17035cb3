# scripts/create_admin.py
"""Create an admin account; self-registration always yields the "user" role."""
import argparse
import getpass
import logging
import sys
from pathlib import Path

# Add project root to sys.path to allow importing the package from a checkout
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from hospital_booking.core.database import SessionLocal, init_db
from hospital_booking.core.exceptions import DuplicateEmailError
from hospital_booking.core.security import UserRole
from hospital_booking.schemas.auth import UserRegister
from hospital_booking.services.auth_service import AuthService

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("create_admin")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="prompted for when omitted")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Password: ")
    user_data = UserRegister(name=args.name, email=args.email, password=password)

    init_db()
    db = SessionLocal()
    try:
        user = AuthService(db).register_user(user_data, role=UserRole.ADMIN)
    except DuplicateEmailError as e:
        logger.error(f"Could not create admin: {e.detail}")
        return 1
    finally:
        db.close()

    logger.info(f"Created admin {user.email} (id={user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
