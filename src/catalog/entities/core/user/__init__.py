"""User entity module.

Products belong to a user. The catalog only reads users to attach an owner to
product responses; user management lives elsewhere.
"""

from .entity import User
from .repository import UserRepository
from .table import UserTable

__all__ = ["User", "UserTable", "UserRepository"]
