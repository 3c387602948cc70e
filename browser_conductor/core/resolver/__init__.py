"""Element resolution module"""

from .service import ElementResolver
from .views import AlternativeCandidate, MatchField, ResolvedElement, SelectorStrategy

__all__ = ['ElementResolver', 'AlternativeCandidate', 'MatchField', 'ResolvedElement', 'SelectorStrategy']
