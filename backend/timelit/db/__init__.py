"""Database utilities and models."""

from timelit.db.base import Base
from timelit.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
