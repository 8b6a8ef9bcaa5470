"""Error types raised by the catalogue and rating stores."""

from __future__ import annotations


class NotFoundError(KeyError):
    """Raised when an update targets a record that does not exist."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message; keep it readable in responses.
        return str(self.args[0]) if self.args else "Not found"


class InvalidRatingError(ValueError):
    """Raised when a rating value falls outside the accepted 1-10 range."""
