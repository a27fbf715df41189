class CleanupError(Exception):
    """
    Base exception for all failures that abort a cleanup run.
    """

    pass


class ConfigurationError(CleanupError):
    """
    Raised when the configuration file cannot be read or is invalid.
    """

    pass


class RecordStoreError(CleanupError):
    """
    Raised when the record document cannot be loaded, parsed or saved.
    """

    pass


class ImageImportError(CleanupError):
    """
    Raised when listing the import folder or copying an image fails.
    """

    pass


class StepStatusError(CleanupError):
    """
    Raised when the workflow step status store cannot be updated.
    """

    pass
