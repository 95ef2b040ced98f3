"""API routes package."""

from willing_tree.api.routes import auth, innermosts, stats, weeks

__all__ = [
    "auth",
    "innermosts",
    "stats",
    "weeks",
]
