"""
Ledger package for the Workflow Service.

Every fresh model computation is appended to a ledger after it has been
cached. Writes are best-effort and never fail a request.
"""

from .base import Ledger
from .postgres import PostgresLedger
from .redis_ledger import RedisLedger

__all__ = ["Ledger", "PostgresLedger", "RedisLedger"]
