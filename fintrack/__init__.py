"""
fintrack - Source Package

A personal-finance tracker that keeps each user's transactions in a
local tabular store, mirrors that store to Google Drive, and derives
multi-currency analytics from it.

DESIGN PRINCIPLES:
1. The local table is the source of truth; the remote copy is a mirror
2. Schema only grows (headers are appended, never rewritten)
3. Degraded rates never block the user
4. Sync failures are shown, never fatal
5. Storage and remote backends are swappable
"""

__version__ = "1.0.0"
__author__ = "fintrack Team"
