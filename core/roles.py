from enum import Enum


class UserRole(str, Enum):
    """Platform roles"""
    SUPER_ADMIN = "super_admin"  # full access, manages admins
    ADMIN = "admin"              # tournaments, payment verification
    USER = "user"                # players

    @classmethod
    def get_hierarchy(cls) -> dict:
        """Higher roles include the permissions of lower ones"""
        return {
            cls.SUPER_ADMIN: [cls.SUPER_ADMIN, cls.ADMIN, cls.USER],
            cls.ADMIN: [cls.ADMIN, cls.USER],
            cls.USER: [cls.USER],
        }

    @classmethod
    def has_permission(cls, user_role: str, required_role: str) -> bool:
        """Check whether user_role grants access to required_role"""
        hierarchy = cls.get_hierarchy()
        try:
            user_role = cls(user_role)
            required_role = cls(required_role)
        except ValueError:
            return False
        return required_role in hierarchy.get(user_role, [])
