"""
Ledger contract.
"""

from abc import ABC, abstractmethod

from ..models import WorkflowRecord


class Ledger(ABC):
    """Append-only log of fresh workflow computations."""

    name = "ledger"

    async def start(self) -> None:
        """No-op by default."""

    async def stop(self) -> None:
        """No-op by default."""

    @abstractmethod
    async def append(self, record: WorkflowRecord) -> None:
        """Persist ``record``. May raise; callers treat this as best-effort."""

    async def health_check(self) -> bool:
        return True
