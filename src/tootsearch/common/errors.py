"""
Exception types shared by the ingestion and search paths.
"""


class TootSearchError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(TootSearchError):
    """The config file is missing, unreadable or malformed."""


class LoginError(TootSearchError):
    """App registration or login against the instance failed."""


class FetchError(TootSearchError):
    """A timeline fetch for one topic failed. Transient.

    items holds statuses from pages fetched before the failure, if any.
    """

    def __init__(self, topic, message, items=()):
        super().__init__(f"{topic}: {message}")
        self.topic = topic
        self.message = message
        self.items = list(items)


class IndexOpenError(TootSearchError):
    """The search index could not be opened or created."""


class IndexWriteError(TootSearchError):
    """A batch of documents could not be committed to the index."""


class PersistenceError(TootSearchError):
    """The watermark file could not be written."""


class QueryParseError(TootSearchError):
    """The query string is empty or could not be parsed."""


class QueryExecutionError(TootSearchError):
    """The index failed while executing a parsed query."""
