"""
Savings Engine - Source Package

Classification and aggregation engine behind a personal savings dashboard.
Turns a flat list of user-entered financial entries into monthly totals,
a savings rate, a persisted "potential savings" target, an onboarding
nudge and a ranked spending breakdown.

DESIGN PRINCIPLES:
1. Every dashboard read is derived from the current entries
2. Bad rows are reported, never silently dropped
3. A failed fetch is never confused with "no data yet"
4. The potential savings figure is stable once generated
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Savings Engine Team"
