from courtside.api.errors import (
    ApiError,
    HttpError,
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    StatsClientError,
)
from courtside.api.http import BaseHttpClient
from courtside.api.stats import StatsApiClient

__all__ = [
    "ApiError",
    "BaseHttpClient",
    "HttpError",
    "MalformedResponseError",
    "NetworkError",
    "RateLimitError",
    "StatsApiClient",
    "StatsClientError",
]
