"""Exception hierarchy.

Internal helpers raise; the pipeline decides whether a failure skips one build
or aborts the run.
"""


class ApirefError(Exception):
    """Base class for all errors raised by apiref."""


class SnapshotFetchError(ApirefError):
    """A build list, live list, snapshot or icon table could not be fetched."""


class GraphIntegrityError(ApirefError):
    """A member or enum item action refers to an owner the graph has never seen."""


class PatchOrderError(ApirefError):
    """A patch was appended whose prev does not match the history's last build."""


class CodecError(ApirefError):
    """Binary encoding or decoding failed."""


class ManifestError(CodecError):
    """The manifest could not be encoded or decoded."""


class SearchIndexError(CodecError):
    """The search index could not be encoded or decoded."""


class SettingsError(ApirefError):
    """A settings file is unreadable or invalid."""
