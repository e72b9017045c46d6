"""
Promote an existing account to super_admin.

Roles can otherwise only be changed by a super admin through the API, so
the first one has to be created from the command line:

    python -m scripts.create_super_admin player@example.com
    python -m scripts.create_super_admin --list
"""
import sys

from api.crud.audit_log_crud import add_audit_log
from api.crud.user import get_user_by_email
from core.roles import UserRole
from db import SessionLocal, transaction
from models.user import User

ROLE_EMOJI = {
    UserRole.SUPER_ADMIN: "👑",
    UserRole.ADMIN: "🛡️",
    UserRole.USER: "👤",
}


def create_super_admin(email: str) -> bool:
    db = SessionLocal()
    try:
        user = get_user_by_email(db, email)
        if not user:
            print(f"❌ No user with email '{email}'")
            return False

        previous = user.role
        with transaction(db):
            user.role = UserRole.SUPER_ADMIN
            add_audit_log(db, None, "role_changed", {
                "user_id": user.id,
                "from": UserRole(previous).value,
                "to": UserRole.SUPER_ADMIN.value,
                "source": "cli",
            })

        print("✅ Super admin created!")
        print(f"   User ID: {user.id}")
        print(f"   Email: {user.email}")
        return True
    finally:
        db.close()


def list_users():
    db = SessionLocal()
    try:
        users = db.query(User).order_by(User.id).all()
        if not users:
            print("❌ No users found")
            return

        print("-" * 80)
        for user in users:
            emoji = ROLE_EMOJI.get(user.role, "❓")
            print(f"{emoji} {user.email:30} | Role: {user.role.value:12} | ID: {user.id}")
        print("-" * 80)
    finally:
        db.close()


def main(argv):
    if not argv:
        print(__doc__)
        return 1
    if argv[0] == "--list":
        list_users()
        return 0
    return 0 if create_super_admin(argv[0]) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
