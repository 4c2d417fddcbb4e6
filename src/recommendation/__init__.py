# Product recommendation — relevance matching and weighted source merging
"""
Recommendation modules:
- matcher: keyword/category/commission relevance, eligibility filter, top-N
- combiner: weighted merge of content, history and session lists
- engine: record-store backed sources and interaction tracking
"""

from .combiner import RecommendationCombiner
from .engine import RecommendationEngine
from .matcher import ProductMatcher, is_eligible

__all__ = [
    "ProductMatcher",
    "RecommendationCombiner",
    "RecommendationEngine",
    "is_eligible",
]
