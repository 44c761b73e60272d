"""
Storefront Kernel

The order/inventory consistency core of the storefront:
- Order numbering via a locked per-store counter row
- Atomic order + line item persistence
- Append-only stock movement ledger with a cached on-hand counter
- Ledger replay for counter reconciliation
- Design review lifecycle for AI-generated artwork
"""

__version__ = "0.1.0"
