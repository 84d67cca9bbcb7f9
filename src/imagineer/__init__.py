"""Imagineer: backend service for tabletop RPG campaign management.

The package serves campaigns, entities, relationships, chapters, sessions,
timeline events and drafts over a JSON API, and runs content analysis and
LLM enrichment jobs over campaign prose.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
