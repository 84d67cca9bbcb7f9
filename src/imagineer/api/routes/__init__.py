"""HTTP routers, in the order they are mounted."""

from imagineer.api.routes import (
    agents,
    analysis,
    auth,
    campaigns,
    content,
    drafts,
    entities,
    game_systems,
    health,
    relationships,
    users,
)

ROUTERS = (
    health.router,
    auth.router,
    game_systems.router,
    campaigns.router,
    entities.router,
    relationships.router,
    content.router,
    users.router,
    drafts.router,
    analysis.router,
    agents.router,
)

__all__ = ["ROUTERS"]
