"""Bounded worker pool for fan-out lookups"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Hashable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')

class BoundedPool:
    """
    Runs one callable per key with at most `size` calls in flight.

    Keys whose call raises or returns None are left out of the result.
    """

    def __init__(self, size: int = 10):
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self.size = size

    def map_settled(self, func: Callable[[K], Optional[V]], keys: Iterable[K]) -> Dict[K, V]:
        """Submit every key, collect results as they complete"""
        unique_keys = list(dict.fromkeys(keys))
        results: Dict[K, V] = {}
        if not unique_keys:
            return results

        with ThreadPoolExecutor(max_workers=min(self.size, len(unique_keys))) as executor:
            futures = {executor.submit(func, key): key for key in unique_keys}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    value = future.result()
                except Exception as e:
                    logger.warning(f"Lookup for {key!r} failed: {e}")
                    continue
                if value is not None:
                    results[key] = value
        return results
