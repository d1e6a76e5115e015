"""Import pipeline failures.

Every failure surfaces to callers as an :class:`ImportFailed`; the subclasses
only tell the logs which phase broke.
"""


class ImportFailed(Exception):
    """The feed import did not complete."""


class FetchFailed(ImportFailed):
    """A feed could not be downloaded (network error, timeout, bad status)."""


class ParseFailed(ImportFailed):
    """A feed document is not well-formed XML."""


class WriteFailed(ImportFailed):
    """A store operation failed during reconciliation."""


class ImportInProgress(ImportFailed):
    """Another import is already running in this process."""
