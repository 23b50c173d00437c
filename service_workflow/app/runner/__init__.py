"""
Model runners for the Workflow Service.
"""

from .base import ModelRunner, extract_text
from .workers_ai import WorkersAIRunner

__all__ = ["ModelRunner", "WorkersAIRunner", "extract_text"]
