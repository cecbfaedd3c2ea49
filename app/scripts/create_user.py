"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST LAST [role]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password Ada Admin ADMIN
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from app.core.database import session_scope
from app.core.exceptions import ConflictError
from app.core.roles import Role
from app.core.security import BcryptPasswordHasher
from app.schemas.user import UserCreate
from app.services.events import LoggingPublisher, UserEventEmitter
from app.services.user_store import SqlAlchemyUserStore
from app.services.users import UserService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a user (no registration UI).")
    parser.add_argument("email", help="Email address (the login name)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role])
    args = parser.parse_args()

    try:
        data = UserCreate(
            email=args.email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=Role(args.role),
        )
    except ValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1

    with session_scope() as db:
        service = UserService(
            SqlAlchemyUserStore(db),
            BcryptPasswordHasher(),
            UserEventEmitter(LoggingPublisher()),
        )
        try:
            user = service.create_user(data)
        except ConflictError as e:
            print(e.message, file=sys.stderr)
            return 1
    print(f"Created user '{data.email}' (id={user.id}) with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
