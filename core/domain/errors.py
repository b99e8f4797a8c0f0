class UpsellEngineError(Exception):
    """Base class for errors the engine surfaces to its callers"""

class InvalidUpsellRequest(UpsellEngineError, ValueError):
    """Request rejected before entering the pipeline"""

class UpsellDeadlineExceeded(UpsellEngineError, TimeoutError):
    """The caller's deadline expired mid-pipeline; nothing was recorded"""

class GuestDataUnavailable(Exception):
    """A booking/guest/loyalty lookup failed. Absorbed by the context resolver."""
