"""
Discogs Edit Helper

Rule-based extraction of positions, durations and artist credits from
Discogs track titles, with title cleanup and a reversible edit history.
"""

__version__ = "1.0.0"
__author__ = "Discogs Edit Helper Team"

from .commands import CommandSummary, EditHelper
from .config import HelperConfig
from .title_parser import ExtractionResult, TitleParser

__all__ = ["CommandSummary", "EditHelper", "ExtractionResult", "HelperConfig", "TitleParser"]
