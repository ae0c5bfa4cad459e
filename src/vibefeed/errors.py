"""Error taxonomy for the feed core.

None of these are fatal to the process: the feed falls back to sample data,
the location falls back to a manual or default area, invalid records are
skipped, and unauthenticated actions redirect to sign-in.
"""

from __future__ import annotations


class VibefeedError(RuntimeError):
    pass


class FetchUnavailable(VibefeedError):
    """The catalog or a user store could not be reached."""


class Unauthenticated(VibefeedError):
    """The action requires a signed-in user."""


class PermissionDenied(VibefeedError):
    """Location permission was refused."""


class ValidationFailure(VibefeedError):
    """A backend record is missing required fields or holds invalid values."""
