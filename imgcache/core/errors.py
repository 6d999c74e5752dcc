"""
Error kinds raised by the cache core. The HTTP layer maps them to status codes.
"""


class ImageCacheError(Exception):
    """Base error for the image cache."""
    pass


class FetchFailed(ImageCacheError):
    """The source URL could not be downloaded."""
    pass


class InvalidSourceURL(FetchFailed):
    """The source URL is not an absolute http(s) URL."""
    pass


class NotAnImage(ImageCacheError):
    """Fetched bytes could not be decoded as an image."""
    pass


class Busy(ImageCacheError):
    """Another request is already fetching or deriving the same key."""

    def __init__(self, key: str):
        super().__init__(f"{key} is already in flight")
        self.key = key


class DerivationFailed(ImageCacheError):
    """The image engine rejected the requested transform."""
    pass


class ArtifactNotFound(ImageCacheError):
    """No artifact is stored under the requested key."""
    pass


class MetadataNotFound(ImageCacheError):
    """No metadata record exists for the source key."""
    pass


class MetadataCorrupt(ImageCacheError):
    """A metadata document exists but cannot be read or parsed."""
    pass
