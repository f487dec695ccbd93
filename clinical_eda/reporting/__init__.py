"""Narrative text and HTML rendering."""

from .report import HTMLReport
from . import narrative

__all__ = ['HTMLReport', 'narrative']
