# src/gitsops/util/retry.py: Decorators for retrying operations.
# This module provides a decorator that re-runs an operation prone to transient
# failures (an external tool exiting non-zero) a bounded number of times with a
# fixed pause between attempts. The last failure is re-raised unchanged.

import time
from functools import wraps
from typing import Callable, Optional, Tuple, Type


def retry_with_backoff(
    attempts: int = 3,
    backoff_in_seconds: float = 1,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, int, BaseException], None]] = None,
):
    """
    Retry the wrapped callable up to `attempts` times in total.

    `on_retry(attempt, attempts, error)` is called after every failed attempt
    that will be followed by another one.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def rwb(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    if attempt >= attempts:
                        raise
                    if on_retry is not None:
                        on_retry(attempt, attempts, e)
                    time.sleep(backoff_in_seconds)
                    attempt += 1
        return wrapper
    return rwb
