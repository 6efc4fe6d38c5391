"""
Bank Reconciler - Source Package

Statement import and reconciliation engine for a multi-tenant
personal/organizational finance dashboard.

DESIGN PRINCIPLES:
1. Engine proposes -> Human confirms -> System commits
2. Fail early, fail visibly
3. No silent corrections (malformed statement blocks are omitted, never guessed)
4. Every state transition must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Bank Reconciler Team"
