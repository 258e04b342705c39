class EnrichmentError(Exception):
    """Raised when a receipt lookup page cannot be fetched or understood."""
