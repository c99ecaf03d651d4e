"""
Statement Kernel

Tenant-scoped persistence and query layer for derived financial statements:
- Balances derived live from the ledger, never stored
- Collision-free statement numbering
- Append-only audit trail per statement
- Structured logging and typed errors
"""

__version__ = "0.1.0"
