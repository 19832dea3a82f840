"""Opportunity sources"""

from .defillama import DefiLlamaYieldSource
from .static_source import JsonFileOpportunitySource, StaticOpportunitySource

__all__ = [
    'DefiLlamaYieldSource',
    'JsonFileOpportunitySource',
    'StaticOpportunitySource'
]
