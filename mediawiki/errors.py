"""
Exceptions raised while resolving configuration or composing the stack.

Nothing here is retried: a failure means no resource graph is produced.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class MediaWikiStackError(Exception):
    """Base class for every error raised by the mediawiki package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(MediaWikiStackError):
    """Required parameters are missing or malformed.

    ``fields`` lists every offending field (or environment variable), never
    just the first one found.
    """

    def __init__(self, fields: Sequence[str], message: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(
            message or f"Missing or invalid configuration: {', '.join(self.fields)}",
            details={"fields": self.fields},
        )


class TopologyOrderError(MediaWikiStackError):
    """A resource references something that is not built before it."""
