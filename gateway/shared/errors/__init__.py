from .base import (
    AppError,
    DownstreamUnavailableError,
    InfrastructureError,
    InvalidIdentityError,
    OriginRejectedError,
    RateLimitedError,
    RouteNotFoundError,
    SessionStoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from .http import handle_app_error, register_error_handler

__all__ = [
    "AppError",
    "DownstreamUnavailableError",
    "InfrastructureError",
    "InvalidIdentityError",
    "OriginRejectedError",
    "RateLimitedError",
    "RouteNotFoundError",
    "SessionStoreUnavailableError",
    "UnauthorizedError",
    "ValidationError",
    "handle_app_error",
    "register_error_handler",
]
