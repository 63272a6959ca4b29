"""API token management. Browser sessions only."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gitzen.api.deps import Services, get_auth, get_services
from gitzen.types.records import AuthContext

router = APIRouter(prefix="/api/tokens", tags=["tokens"])


class TokenCreateRequest(BaseModel):
    name: str = ""
    repos: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    expires_in: int | None = Field(None, alias="expiresIn")


@router.post("")
async def create_token(
    payload: TokenCreateRequest,
    auth: AuthContext = Depends(get_auth),
    services: Services = Depends(get_services),
):
    created = await services.tokens.create(
        auth, payload.name, payload.repos, payload.permissions, payload.expires_in
    )
    return JSONResponse(created.to_dict(), status_code=201)


@router.get("")
async def list_tokens(
    auth: AuthContext = Depends(get_auth), services: Services = Depends(get_services)
):
    return [record.summary() for record in await services.tokens.list(auth)]


@router.delete("/{token_id}")
async def revoke_token(
    token_id: str,
    auth: AuthContext = Depends(get_auth),
    services: Services = Depends(get_services),
):
    await services.tokens.revoke(auth, token_id)
    return {"ok": True}
