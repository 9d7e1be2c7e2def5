"""Exception types raised by clusterlayout.

All of them derive from ValueError so callers treating bad input generically
keep working.
"""

from __future__ import annotations


class ParseError(ValueError):
    """Input text cannot be turned into a graph."""


class ClusterTreeError(ValueError):
    """The cluster hierarchy is not a tree or node membership is broken."""


class RankingError(ValueError):
    """No ranking satisfies the minimum edge lengths (positive cycle)."""
