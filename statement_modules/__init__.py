"""
Statement Modules.

Orchestration layers over the Statement Kernel.  Each module contains:
- Domain models (frozen section dataclasses)
- Workflows (state machines)
- Configuration schemas (policy and classification tables)
- A service class that is the module's public entry point

Modules:
- Balance sheet: generation, review workflow, comparison, audit trail
"""

from statement_modules import balance_sheet

__all__ = [
    "balance_sheet",
]
