"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - CLIENT: submits applications and pays for them
    - EMPLOYEE: works the applications assigned to them
    - ADMIN: reviews, assigns, verifies payments, manages clients
    """

    CLIENT = "client"
    EMPLOYEE = "employee"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
