from typing import Optional, Dict, Any


class NewsApiError(Exception):
    status_code: int = 400

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(NewsApiError):
    pass


class AuthenticationRequiredError(NewsApiError):
    status_code = 401

    def __init__(self):
        super().__init__(
            message="Authentication required. Please provide a valid x-user-id header.",
            error_code="AUTHENTICATION_REQUIRED"
        )


class AccountDeletedError(NewsApiError):
    status_code = 403

    def __init__(self, user_id: str):
        super().__init__(
            message="Account has been deleted.",
            error_code="ACCOUNT_DELETED",
            details={"user_id": user_id}
        )
