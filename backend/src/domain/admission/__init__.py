"""Admission domain - counter store port"""

from .ports import WindowLimit, CounterStoreUnavailable, CounterStorePort

__all__ = ["WindowLimit", "CounterStoreUnavailable", "CounterStorePort"]
