from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apps.api.core.config import Settings, get_settings


class Actor:
    """Identity attributed to ticket mutations made by a request."""

    def __init__(self, token: str, display_name: str):
        self.token = token
        self.display_name = display_name

    def __repr__(self) -> str:
        return f"Actor({self.display_name!r})"


bearer_scheme = HTTPBearer(auto_error=False)


def resolve_actor_from_token(token: str | None, tokens: dict[str, str]) -> Actor:
    """Return the actor associated with the provided bearer token."""

    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    display_name = tokens.get(token)
    if display_name is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return Actor(token=token, display_name=display_name)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Actor:
    """Map a static bearer token to a display name.

    Session handling lives outside this service; callers present one of the
    configured ``api_tokens`` and the mapped name is what ends up on the
    timeline.
    """

    cached = getattr(request.state, "actor", None)
    if isinstance(cached, Actor):
        return cached

    token = credentials.credentials if credentials is not None else None
    actor = resolve_actor_from_token(token, settings.api_tokens)
    request.state.actor = actor
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


def team_members(tokens: dict[str, str]) -> list[str]:
    """Distinct display names from the token map, sorted by name."""

    return sorted(set(tokens.values()), key=str.casefold)
