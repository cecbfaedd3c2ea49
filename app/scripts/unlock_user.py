"""
Lift a login lockout. Run from project root:
  python -m app.scripts.unlock_user EMAIL
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import session_scope
from app.core.security import BcryptPasswordHasher
from app.services.credentials import CredentialVerifier
from app.services.user_store import SqlAlchemyUserStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Unlock an account locked after failed logins.")
    parser.add_argument("email", help="Email address of the locked account")
    args = parser.parse_args()

    with session_scope() as db:
        store = SqlAlchemyUserStore(db)
        user = store.find_by_email(args.email.strip())
        if user is None:
            print(f"User '{args.email}' not found.", file=sys.stderr)
            return 1
        if user.account_non_locked:
            print(f"User '{args.email}' is not locked.")
            return 0
        verifier = CredentialVerifier(
            store, BcryptPasswordHasher(), lockout_threshold=get_settings().LOCKOUT_THRESHOLD
        )
        verifier.unlock(user.id)
    print(f"Unlocked '{args.email}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
