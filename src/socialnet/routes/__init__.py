from . import follow, publication, user

__all__ = ["user", "follow", "publication"]
