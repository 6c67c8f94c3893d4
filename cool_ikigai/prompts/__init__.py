# cool_ikigai/prompts/__init__.py
"""Prompts package - centralized prompt management"""

# Import all prompt modules for PromptManager
from . import bob_prompts
from . import summary_prompts
from . import common_prompts

__all__ = [
    'bob_prompts',
    'summary_prompts',
    'common_prompts'
]
