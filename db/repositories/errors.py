"""
Repository-layer exceptions for store and benchmark flows.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for store failures raised by this project."""


class CompanyNotFoundError(StoreError):
    """Raised when a directly requested company does not exist."""


class MemberNotFoundError(StoreError):
    """Raised when a directly requested member does not belong to the company."""


class BenchmarkWriteConflictError(StoreError):
    """
    Raised when a benchmark bucket update keeps conflicting with concurrent
    writers after all retries.  Transient: the caller may retry.
    """
