class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class FileReadError(ProcessorError):
    """Raised when an invoice file or its page snapshot cannot be read from disk."""


class ValidationCancelledError(ProcessorError):
    """Raised when the caller cancels a validation run."""
