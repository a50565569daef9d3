class ShelfError(Exception):
    """Base exception for all promptshelf errors."""
    pass

class RecoverableError(ShelfError):
    """An error that can be recovered from without data loss."""
    pass

class FatalError(ShelfError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to data that fails model validation"""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass
