"""
Memory module for the AI interview service.
Provides deterministic fact extraction and the capped fact summary.
"""

from .extractors import fact_extractor, merge_summary

__all__ = ['fact_extractor', 'merge_summary']
