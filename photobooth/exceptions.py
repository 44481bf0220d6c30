class PhotoboothError(Exception):
    """Base exception for the photobooth service."""


class CameraUnavailableError(PhotoboothError):
    """Raised when the camera device cannot be opened or read."""


class InvalidImageError(PhotoboothError):
    """Raised when an encoded image is not a well-formed base64 data URI."""


class AssetLoadError(PhotoboothError):
    """Raised when a template, frame or generated image cannot be loaded."""


class RecordStoreError(PhotoboothError):
    """Raised when the result database cannot be read or written."""


class RemoteServiceError(PhotoboothError):
    """Raised when the photobooth web API fails or is unreachable."""


class ConfigurationError(PhotoboothError):
    """Raised when a service is constructed without its required settings."""


class PrintError(PhotoboothError):
    """Raised when a print job cannot be prepared or submitted."""
