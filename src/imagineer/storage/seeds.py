"""Built-in reference data seeded into every database.

Game systems are inserted once per database. Relationship type templates
are copied into each campaign when it is created so campaigns can edit
their own vocabulary without affecting others.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Game Systems
# =============================================================================

BUILTIN_GAME_SYSTEMS: list[dict[str, Any]] = [
    {
        "name": "Call of Cthulhu 7th Edition",
        "code": "coc-7e",
        "attribute_schema": {
            "characteristics": {
                "STR": {"name": "Strength", "type": "percentile", "range": [15, 90], "default": 50},
                "CON": {"name": "Constitution", "type": "percentile", "range": [15, 90], "default": 50},
                "SIZ": {"name": "Size", "type": "percentile", "range": [40, 90], "default": 65},
                "DEX": {"name": "Dexterity", "type": "percentile", "range": [15, 90], "default": 50},
                "APP": {"name": "Appearance", "type": "percentile", "range": [15, 90], "default": 50},
                "INT": {"name": "Intelligence", "type": "percentile", "range": [40, 90], "default": 65},
                "POW": {"name": "Power", "type": "percentile", "range": [15, 90], "default": 50},
                "EDU": {"name": "Education", "type": "percentile", "range": [40, 90], "default": 65},
            },
            "derived": {"HP": "(CON+SIZ)/10", "MP": "POW/5", "SAN": "POW"},
        },
        "skill_schema": {"type": "percentile", "categories": ["combat", "investigation", "social"]},
        "dice_conventions": {"primary": "d100", "success_levels": ["regular", "hard", "extreme"]},
    },
    {
        "name": "GURPS 4th Edition",
        "code": "gurps-4e",
        "attribute_schema": {
            "primary_attributes": {
                "ST": {"name": "Strength", "base": 10, "cost_per_level": 10},
                "DX": {"name": "Dexterity", "base": 10, "cost_per_level": 20},
                "IQ": {"name": "Intelligence", "base": 10, "cost_per_level": 20},
                "HT": {"name": "Health", "base": 10, "cost_per_level": 10},
            },
            "secondary_characteristics": {
                "HP": {"base_formula": "ST", "cost_per_level": 2},
                "Will": {"base_formula": "IQ", "cost_per_level": 5},
                "Per": {"base_formula": "IQ", "cost_per_level": 5},
                "FP": {"base_formula": "HT", "cost_per_level": 3},
            },
        },
        "skill_schema": {"difficulty_levels": ["E", "A", "H", "VH"]},
        "dice_conventions": {"primary": "3d6", "roll_under": True},
    },
    {
        "name": "Forged in the Dark",
        "code": "fitd",
        "attribute_schema": {
            "attributes": {
                "Insight": {"description": "Mental acuity, observation, technical skill"},
                "Prowess": {"description": "Physical capability, speed, strength"},
                "Resolve": {"description": "Determination, social skill, willpower"},
            },
            "action_ratings": {
                "Insight": ["Hunt", "Study", "Survey", "Tinker"],
                "Prowess": ["Finesse", "Prowl", "Skirmish", "Wreck"],
                "Resolve": ["Attune", "Command", "Consort", "Sway"],
            },
        },
        "skill_schema": {"max_rating": 4},
        "dice_conventions": {"primary": "d6 pool", "outcomes": ["critical", "success", "partial", "failure"]},
    },
    {
        "name": "D&D 5th Edition",
        "code": "dnd-5e",
        "attribute_schema": {
            "ability_scores": {
                "STR": {"name": "Strength", "type": "standard", "range": [1, 30], "default": 10},
                "DEX": {"name": "Dexterity", "type": "standard", "range": [1, 30], "default": 10},
                "CON": {"name": "Constitution", "type": "standard", "range": [1, 30], "default": 10},
                "INT": {"name": "Intelligence", "type": "standard", "range": [1, 30], "default": 10},
                "WIS": {"name": "Wisdom", "type": "standard", "range": [1, 30], "default": 10},
                "CHA": {"name": "Charisma", "type": "standard", "range": [1, 30], "default": 10},
            },
        },
        "skill_schema": {"proficiency_bonus_by_level": True},
        "dice_conventions": {"primary": "d20", "advantage": True},
    },
    {
        "name": "Other / Homebrew",
        "code": "other",
        "attribute_schema": {},
        "skill_schema": {},
        "dice_conventions": {},
    },
]


# =============================================================================
# Relationship Type Templates
# =============================================================================

RELATIONSHIP_TYPE_TEMPLATES: list[dict[str, Any]] = [
    {"name": "owns", "inverse_name": "owned_by", "is_symmetric": False,
     "display_label": "Owns", "inverse_display_label": "Is owned by",
     "description": "Entity possesses or controls another entity"},
    {"name": "employs", "inverse_name": "employed_by", "is_symmetric": False,
     "display_label": "Employs", "inverse_display_label": "Is employed by",
     "description": "Entity employs another as worker or servant"},
    {"name": "works_for", "inverse_name": "employs_member", "is_symmetric": False,
     "display_label": "Works for", "inverse_display_label": "Employs",
     "description": "Entity works on behalf of another"},
    {"name": "reports_to", "inverse_name": "manages", "is_symmetric": False,
     "display_label": "Reports to", "inverse_display_label": "Manages",
     "description": "Entity reports to another in organizational hierarchy"},
    {"name": "parent_of", "inverse_name": "child_of", "is_symmetric": False,
     "display_label": "Parent of", "inverse_display_label": "Child of",
     "description": "Entity is parent of another"},
    {"name": "located_at", "inverse_name": "location_of", "is_symmetric": False,
     "display_label": "Located at", "inverse_display_label": "Location of",
     "description": "Entity is physically located at another location"},
    {"name": "member_of", "inverse_name": "has_member", "is_symmetric": False,
     "display_label": "Member of", "inverse_display_label": "Has member",
     "description": "Entity is member of organization or faction"},
    {"name": "created", "inverse_name": "created_by", "is_symmetric": False,
     "display_label": "Created", "inverse_display_label": "Created by",
     "description": "Entity created or made another entity"},
    {"name": "rules", "inverse_name": "ruled_by", "is_symmetric": False,
     "display_label": "Rules", "inverse_display_label": "Ruled by",
     "description": "Entity has political authority over another"},
    {"name": "headquartered_at", "inverse_name": "headquarters_of", "is_symmetric": False,
     "display_label": "Headquartered at", "inverse_display_label": "Headquarters of",
     "description": "Entity has its primary base of operations at a location"},
    {"name": "knows", "inverse_name": "knows", "is_symmetric": True,
     "display_label": "Knows", "inverse_display_label": "Knows",
     "description": "Entity is acquainted with another"},
    {"name": "friend_of", "inverse_name": "friend_of", "is_symmetric": True,
     "display_label": "Friend of", "inverse_display_label": "Friend of",
     "description": "Entity has friendly relationship with another"},
    {"name": "enemy_of", "inverse_name": "enemy_of", "is_symmetric": True,
     "display_label": "Enemy of", "inverse_display_label": "Enemy of",
     "description": "Entity has hostile relationship with another"},
    {"name": "allied_with", "inverse_name": "allied_with", "is_symmetric": True,
     "display_label": "Allied with", "inverse_display_label": "Allied with",
     "description": "Entity has alliance or partnership with another"},
]


__all__ = [
    "BUILTIN_GAME_SYSTEMS",
    "RELATIONSHIP_TYPE_TEMPLATES",
]
