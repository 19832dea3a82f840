"""In-memory and file-backed opportunity sources"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from ..core.types import RawOpportunity
from ..services.interfaces import OpportunitySourceInterface

logger = logging.getLogger(__name__)

Record = Union[RawOpportunity, Dict[str, Any]]


class StaticOpportunitySource(OpportunitySourceInterface):
    """Serves a fixed list of opportunity records"""

    def __init__(self, records: Iterable[Record]):
        self.records = list(records)

    async def fetch_opportunities(self) -> List[Record]:
        return list(self.records)


class JsonFileOpportunitySource(OpportunitySourceInterface):
    """Reads opportunity records from a JSON file

    The file holds either a JSON array of records or an object with the
    records under ``data``.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def fetch_opportunities(self) -> List[Record]:
        with open(self.path) as f:
            payload = json.load(f)

        if isinstance(payload, dict):
            payload = payload.get('data', [])
        if not isinstance(payload, list):
            raise ValueError(f"{self.path}: expected a list of opportunities")

        logger.info(f"Loaded {len(payload)} opportunities from {self.path}")
        return payload
