# Users module
from microfin.modules.users.models import User, UserRole

__all__ = ["User", "UserRole"]
