"""
Retry utilities for SafePath.

This module provides retry and backoff helpers for calls to
external collaborators.
"""

import asyncio
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

T = TypeVar('T')

def backoff_delay(attempt: int, base: float, max_delay: float, jitter: bool = True) -> float:
    """
    Delay before the next attempt.
    
    Args:
        attempt: failed attempt number (1-based)
        base: initial delay in seconds
        max_delay: upper bound in seconds
        jitter: scale into [50%, 100%] of the nominal delay
    """
    delay = min(max_delay, base * (2 ** max(0, attempt - 1)))
    if jitter:
        delay = delay * (0.5 + random.random() * 0.5)
    return delay

async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Runs func, retrying with exponential backoff.
    
    Args:
        func: coroutine factory to call
        max_retries: retries after the first attempt
        base_delay: initial delay in seconds
        max_delay: upper bound in seconds
        jitter: apply jitter to each delay
        retry_on: exception types that trigger a retry
        
    Returns:
        func's result
        
    Raises:
        the exception from the last attempt
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except retry_on:
            if attempt > max_retries:
                raise
            await asyncio.sleep(backoff_delay(attempt, base_delay, max_delay, jitter))
