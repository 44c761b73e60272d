"""Kernel services - the write side.  Services flush, callers commit."""

from storefront_kernel.services.base import BaseService, translate_store_errors
from storefront_kernel.services.catalog_service import CatalogService
from storefront_kernel.services.design_service import DesignService
from storefront_kernel.services.order_sequencer import OrderSequencer
from storefront_kernel.services.sequence_service import SequenceCounter, SequenceService
from storefront_kernel.services.stock_ledger import StockLedger
from storefront_kernel.services.stock_reconciliation_service import (
    StockReconciliationService,
)

__all__ = [
    "BaseService",
    "translate_store_errors",
    "CatalogService",
    "DesignService",
    "OrderSequencer",
    "SequenceCounter",
    "SequenceService",
    "StockLedger",
    "StockReconciliationService",
]
