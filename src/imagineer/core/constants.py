"""Application-wide constants for the Imagineer campaign backend.

This module defines thresholds and limits used by content analysis,
enrichment and the HTTP layer.
"""

from __future__ import annotations

# =============================================================================
# Content Analysis
# =============================================================================

EXACT_MATCH_THRESHOLD = 0.9
"""Similarity at or above which a name is treated as the same entity."""

FUZZY_MATCH_THRESHOLD = 0.4
"""Similarity at or above which a name is suggested as a likely match."""

RESOLVE_ENTITY_THRESHOLD = 0.3
"""Minimum similarity returned by the fuzzy entity resolve endpoint."""

MIN_MENTION_LENGTH = 3
"""Entity names shorter than this are never searched for as plain mentions."""

CONTEXT_RADIUS = 50
"""Characters of context captured on either side of a detection."""

MAX_MISSPELLINGS = 20
"""Maximum misspelling candidates reported per analysis run."""

REVERT_SEARCH_RADIUS = 50
"""Characters searched either side of an item's offset when undoing a fix."""

DUPLICATE_NAME_THRESHOLD = 0.7
"""Similarity above which two entity names are reported as likely duplicates."""

# =============================================================================
# Enrichment
# =============================================================================

ENRICHMENT_CONTENT_LIMIT = 4000
"""Maximum characters of source content sent per entity enrichment call."""

ENRICHMENT_MAX_TOKENS = 2048
ENRICHMENT_TEMPERATURE = 0.3

NEW_ENTITY_MAX_TOKENS = 2048
NEW_ENTITY_TEMPERATURE = 0.3

EXPERT_MAX_TOKENS = 4096
GRAPH_EXPERT_MAX_TOKENS = 2048
TTRPG_EXPERT_TEMPERATURE = 0.3
CANON_EXPERT_TEMPERATURE = 0.2
GRAPH_EXPERT_TEMPERATURE = 0.2

REVISION_MAX_TOKENS = 8192
REVISION_TEMPERATURE = 0.4

# =============================================================================
# HTTP
# =============================================================================

DEFAULT_PAGE_SIZE = 100
"""Default number of entities returned by list endpoints."""

MAX_PAGE_SIZE = 500
"""Upper bound on list endpoint page sizes."""

RECENT_CAMPAIGNS_LIMIT = 5
"""Most recently updated campaigns listed in the overview statistics."""

DEFAULT_SEARCH_LIMIT = 20
"""Default number of results for search and resolve endpoints."""

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 600
"""Lifetime of the OAuth state cookie in seconds."""
