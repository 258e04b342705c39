class TemplateError(Exception):
    """Raised when template documents are missing or malformed.

    This is a deployment defect, not a per-document problem, so it is allowed
    to stop the process at startup.
    """
