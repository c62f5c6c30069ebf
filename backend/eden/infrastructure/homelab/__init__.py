"""Homelab API infrastructure package."""

from .homelab_client import HomelabApiClient, InitResult
from .retry_policy import RetryPolicy, linear_backoff
from .simulated_data import HomelabSimulator

__all__ = [
    "HomelabApiClient",
    "InitResult",
    "RetryPolicy",
    "linear_backoff",
    "HomelabSimulator",
]
