from .follow import Follow
from .publication import Publication
from .user import User

__all__ = ["User", "Follow", "Publication"]
