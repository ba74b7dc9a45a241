"""
Family Finance Tracker - Source Package

Backend core for a personal/family finance tracker: users authenticate
with an access/refresh token pair, record transactions against
categories, and query the spending of the groups they belong to.

DESIGN PRINCIPLES:
1. Every protected operation goes through the AuthGate first
2. Expected failures are values, not exceptions
3. Only the consistency engine renames or deletes categories
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Family Finance Tracker Team"
