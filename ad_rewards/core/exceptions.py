from fastapi import HTTPException, status


class BaseException(HTTPException):  # <-- наследуемся от HTTPException, который наследован от Exception
    """
    change response of exception to
        raise HTTPException(status_code=400, detail={
            "status": "error",
            "message": detail,
        })
    """
    status_code = 500  # <-- задаем значения по умолчанию
    detail = ""

    def __init__(self, detail: str = None):
        if detail is not None:
            self.detail = detail
        super().__init__(status_code=self.status_code, detail=self.detail)


class ObjectNotFoundException(BaseException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Object not found"


class DuplicateObjectException(BaseException):
    status_code = status.HTTP_409_CONFLICT
    detail = "Duplicate object"


class DatabaseException(BaseException):
    status_code = status.HTTP_409_CONFLICT
    detail = "Database error"


class CustomException(BaseException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Custom exception"


# Ad watch admission

class ProviderDisabled(BaseException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "This ad provider is temporarily unavailable"


class DailyLimitReached(BaseException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Daily limit reached. Come back tomorrow for more ads!"


class CooldownActive(BaseException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Please wait before watching another ad"

    def __init__(self, remaining_seconds: int, detail: str = None):
        self.remaining_seconds = remaining_seconds
        super().__init__(detail=detail or f"Please wait {remaining_seconds}s before watching another ad")


class AnotherWatchInProgress(BaseException):
    status_code = status.HTTP_409_CONFLICT
    detail = "Please complete the current ad first"


class ProviderNotReady(BaseException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Ad provider is loading... Please wait a moment"


# Mid-flight failures

class IncompleteWatch(BaseException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Ad was not completed. Please watch the full ad without skipping."


class ProviderTimedOut(BaseException):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    detail = "Ad provider did not respond in time"


# Crediting

class ReferrerLookupFailed(BaseException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Referrer not found"


class PersistenceFailure(BaseException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Storage is unavailable"


class StoreError(Exception):
    """Raised by store implementations when the backend fails."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")
