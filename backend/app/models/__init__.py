"""ORM Models: SQLAlchemy declarative models for users, tokens and bookmarks.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the aggregate root; bookmarks and tokens are scoped by user_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from app.models.user import User  # noqa: F401
from app.models.auth_token import AuthToken  # noqa: F401
from app.models.bookmark import Bookmark  # noqa: F401
