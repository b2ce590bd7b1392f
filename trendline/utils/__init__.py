from .errors import (
    TrendlineError,
    APIError,
    RateLimitError,
    ServerError,
    ClientError,
    TransportError,
    PayloadShapeError,
    SourceUnavailableError,
    OperationCancelled,
    ConfigError,
)
from .concurrency import CancelToken, Settled, gather_settled, run_cancellable

__all__ = [
    'TrendlineError',
    'APIError',
    'RateLimitError',
    'ServerError',
    'ClientError',
    'TransportError',
    'PayloadShapeError',
    'SourceUnavailableError',
    'OperationCancelled',
    'ConfigError',
    'CancelToken',
    'Settled',
    'gather_settled',
    'run_cancellable',
]
