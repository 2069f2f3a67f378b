# quran_search/exceptions.py
"""
Custom exceptions for the search engine.
"""


class QuranSearchError(Exception):
    """Base exception for quran search."""
    pass


class ConfigurationError(QuranSearchError):
    """Configuration-related errors."""
    pass


class CorpusError(QuranSearchError):
    """Bundled corpus could not be read."""
    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read corpus file {path}: {reason}")


class IndexFormatError(QuranSearchError):
    """Serialized index failed to parse or has an unexpected shape."""
    pass


class DownloadError(QuranSearchError):
    """Errors from the corpus downloader."""
    pass


class StorageError(QuranSearchError):
    """Durable storage errors."""
    pass
