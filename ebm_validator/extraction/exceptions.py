class SnapshotError(Exception):
    """Raised when a text snapshot payload is missing, unreadable or empty."""
