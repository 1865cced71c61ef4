"""Re-export all models so Base.metadata sees them."""

from app.db.models.progress import Progress
from app.db.models.response import Response

__all__ = [
    "Progress",
    "Response",
]
