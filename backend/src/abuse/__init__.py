"""Abuse reports and block directives"""

from .registry import AbuseRegistry, BlockCheck, NO_BLOCK, ReportOutcome

__all__ = ["AbuseRegistry", "BlockCheck", "NO_BLOCK", "ReportOutcome"]
