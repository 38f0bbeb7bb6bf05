"""Translation backend implementations."""

from .worker_backend import EndpointFailoverClient

__all__ = [
    'EndpointFailoverClient'
]
