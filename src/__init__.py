"""
Installment Tracker - Source Package

The schedule engine behind a personal finance tracker: loan installment
schedules, recurring bill projections and the payment bookkeeping that keeps
them consistent.

DESIGN PRINCIPLES:
1. Schedule math is pure - full values in, new values out
2. Storage and AI extraction are collaborators, never called from the core
3. Status is derived from the schedule, never stored independently
4. Every mutation made through a flow is auditable
"""

__version__ = "1.0.0"
__author__ = "Installment Tracker Team"
