"""
Error taxonomy.

None of these is fatal: callers catch them at the boundary where the failed
operation can be dropped (an occurrence, a settings read, a membership lookup,
a watchlist call) and carry on.
"""

from __future__ import annotations


class TickerLensError(Exception):
    """Base class for every error raised by this package."""


class RangeInvalid(TickerLensError):
    """A text span can no longer be applied (stale offsets, detached leaf, zero size)."""


class SettingsUnavailable(TickerLensError):
    """The settings store could not be read."""


class MembershipUnknown(TickerLensError):
    """Watchlist membership for a symbol could not be determined."""


class MutationFailed(TickerLensError):
    """An alert or watchlist call did not succeed."""
