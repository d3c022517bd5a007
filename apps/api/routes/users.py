from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.api.core.config import Settings, get_settings
from apps.api.dependencies.auth import CurrentActor, team_members

router = APIRouter(prefix="/api", tags=["users"])


class UserModel(BaseModel):
    full_name: str


class CurrentUserResponse(BaseModel):
    user: UserModel


@router.get("/auth/me", response_model=CurrentUserResponse, summary="Caller identity")
async def current_user(actor: CurrentActor) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserModel(full_name=actor.display_name))


@router.get("/users", response_model=list[UserModel], summary="Team directory for assignment")
async def list_users(
    _: CurrentActor,
    settings: Annotated[Settings, Depends(get_settings)],
) -> list[UserModel]:
    return [UserModel(full_name=name) for name in team_members(settings.api_tokens)]
