"""Analysis server access."""
from .registry import AnalysisServer, FirstMatchSelector, ServerRegistry, ServerSelector

__all__ = ['AnalysisServer', 'FirstMatchSelector', 'ServerRegistry', 'ServerSelector']
