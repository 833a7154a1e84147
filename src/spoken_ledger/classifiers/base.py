from abc import ABC, abstractmethod

from spoken_ledger.models import CategorizationResult


class RemoteCategorizer(ABC):
    @abstractmethod
    async def categorize(self, text: str) -> CategorizationResult:
        """Ask the remote model for a category. May raise on transport errors."""
        pass

    async def aclose(self) -> None:
        """Release network resources held by the categorizer."""
        return None
