"""Driver protocols and base classes for database adapters."""

from pgfusion.driver._async import AsyncDriverAdapterBase, TransactionState

__all__ = ("AsyncDriverAdapterBase", "TransactionState")
