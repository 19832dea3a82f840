"""Abstract interfaces for external services"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union

from ..core.types import RawOpportunity


class OpportunitySourceInterface(ABC):
    @abstractmethod
    async def fetch_opportunities(self) -> List[Union[RawOpportunity, Dict[str, Any]]]:
        """Get the current per-chain yield opportunities"""
        pass
