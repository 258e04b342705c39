class QrDecodeError(Exception):
    """Raised when a QR decoder fails on a bitmap for reasons other than 'not found'."""


class ScanCancelledError(Exception):
    """Raised when a caller cancels a QR scan between page/scale attempts."""
