"""RPC 调用链路的重试、断路与限流"""
from .error_handler import CircuitBreaker, global_error_aggregator, with_retry
from .rate_limiter import RateLimiter, global_rate_limiter_registry

__all__ = [
    "with_retry",
    "CircuitBreaker",
    "global_error_aggregator",
    "RateLimiter",
    "global_rate_limiter_registry",
]
