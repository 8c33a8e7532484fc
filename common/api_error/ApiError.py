# common/api_error/ApiError.py
class AppError(Exception):
    """Base error for all logvault-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundError(AppError):
    """A log file, stream or table row does not exist."""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, status_code=404, code=code)


class StoreError(AppError):
    """Specific for DB issues."""

    def __init__(self, message: str, code: str = "STORE_ERROR"):
        super().__init__(message, status_code=500, code=code)


class WriteError(AppError):
    """Appending to a log file failed."""

    def __init__(self, message: str, code: str = "WRITE_ERROR"):
        super().__init__(message, status_code=500, code=code)


__all__ = ["AppError", "NotFoundError", "StoreError", "WriteError"]
