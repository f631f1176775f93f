class QuotePayloadError(ValueError):
    """Upstream quote payload did not have the expected shape."""
