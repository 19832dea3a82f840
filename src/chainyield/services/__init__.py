from .interfaces import OpportunitySourceInterface
from .yield_optimizer_service import YieldOptimizerService

__all__ = ['OpportunitySourceInterface', 'YieldOptimizerService']
