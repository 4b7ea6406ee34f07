"""
Services layer for the learning graph.

Progress tracking and recommendations over loaded course content.
"""

from .recommendation_service import RecommendationEngine
from .progress_service import ProgressTracker

__all__ = [
    "RecommendationEngine",
    "ProgressTracker",
]
