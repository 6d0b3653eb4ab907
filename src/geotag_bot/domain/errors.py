"""Error taxonomy for the geotag feature."""


class GeotagError(Exception):
    """Base class for geotag errors."""


class ExternalServiceError(GeotagError):
    """A geocoding, map or Telegram call failed or timed out."""


class ValidationError(GeotagError):
    """User input was rejected; session state is left unchanged."""


class RenderError(GeotagError):
    """Compositing the annotated photo failed."""
