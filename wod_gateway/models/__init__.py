from .base import Base
from .api_usage import ApiUsage
from .error_code import ErrorCode
from .profile import Profile

__all__ = [
    "Base",
    "ApiUsage",
    "ErrorCode",
    "Profile",
]
