"""
Finance Tracker - Source Package

A personal finance tracker: users record income and expenses,
set savings goals, track recurring subscriptions and read
aggregate dashboards.

DESIGN PRINCIPLES:
1. Validate at the boundary, store only well-formed records
2. Every user is explicit (session context is passed, never global)
3. Storage, file hosting and auth are swappable collaborators
4. No hidden retries - failures surface to the user or the host
5. Every write is logged
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
