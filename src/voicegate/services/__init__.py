"""
Text moderation services.

    event payload ─▶ TemplateReplacer ─▶ remove_emotes ─▶ SpamCleaner
                                                              │
                                                              ▼
                          speech ◀── accepted ◀── FilterManager.check_string

FilterSweeper periodically drops expired deny entries from the FilterManager.
"""

from .filter_manager import FilterManager
from .filter_sweeper import FilterSweeper
from .moderation_pipeline import ModerationPipeline
from .spam_cleaner import SpamCleaner, quick_clean
from .template_replacer import TemplateReplacer

__all__ = [
    "FilterManager",
    "FilterSweeper",
    "ModerationPipeline",
    "SpamCleaner",
    "TemplateReplacer",
    "quick_clean",
]
