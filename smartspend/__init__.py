"""
SmartSpend - Source Package

A workspace-scoped shared expense ledger. Users from a global directory
join workspaces, each with its own currency, budget and member roster,
and record expenses collaboratively.

DESIGN PRINCIPLES:
1. One immutable snapshot, replaced whole on every transition
2. Every mutation is authorized before it is applied
3. Rejected operations never partially apply
4. Every transition is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SmartSpend Team"
