"""ORM models. Importing this package registers every table on Base.metadata."""

from snippetdeck.models.snippet import Snippet
from snippetdeck.models.user import User

__all__ = ["Snippet", "User"]
