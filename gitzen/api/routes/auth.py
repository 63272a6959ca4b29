"""Browser sign-in, sign-out and the CLI device flow."""

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from gitzen.api.deps import Services, get_services
from gitzen.auth import SESSION_COOKIE
from gitzen.crypto import generate_random_hex, timing_safe_equal
from gitzen.exceptions import AuthenticationError, GitzenError
from gitzen.identity import is_past
from gitzen.logging import get_logger, log_audit
from gitzen.oauth import DENIED, EXPIRED, PENDING, SLOW_DOWN, SUCCESS

logger = get_logger("api.auth")

router = APIRouter(tags=["auth"])

STATE_COOKIE = "oauth_state"
STATE_MAX_AGE = 600


class DeviceTokenRequest(BaseModel):
    device_code: str = Field("", alias="deviceCode")


def _set_cookie(response: Response, services: Services, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=services.config.secure_cookies,
    )


@router.get("/api/auth/me")
async def me(request: Request, services: Services = Depends(get_services)):
    """Report whether the session cookie is valid. Never fails."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        return {"authenticated": False}
    session = await services.identity.get_session(session_id)
    if session is None or is_past(session.expires_at):
        return {"authenticated": False}
    user = await services.identity.get_user(session.user_id)
    if user is None:
        return {"authenticated": False}
    return {"authenticated": True, "username": user.github_username}


@router.get("/auth/login")
async def login(request: Request, services: Services = Depends(get_services)):
    state = generate_random_hex(16)
    redirect_uri = str(request.url_for("auth_callback"))
    response = RedirectResponse(services.oauth.authorize_url(state, redirect_uri), status_code=302)
    _set_cookie(response, services, STATE_COOKIE, state, STATE_MAX_AGE)
    return response


@router.get("/auth/callback", name="auth_callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    services: Services = Depends(get_services),
):
    if not code or not state:
        return PlainTextResponse("Missing code or state", status_code=400)

    stored_state = request.cookies.get(STATE_COOKIE)
    if not stored_state or not timing_safe_equal(state, stored_state):
        return PlainTextResponse("Invalid state parameter", status_code=400)

    try:
        tokens = await services.oauth.exchange_code(code)
    except AuthenticationError as e:
        log_audit("auth.login_failed", reason=e.code)
        return JSONResponse({"error": e.message}, status_code=400)

    try:
        remote_user = await services.oauth.fetch_user(tokens.access_token)
    except (GitzenError, httpx.HTTPError) as e:
        logger.warning("Could not identify the signed-in user: %s", e)
        return PlainTextResponse("Failed to verify GitHub user", status_code=400)

    user = await services.identity.upsert_user(remote_user, tokens)
    session_id, _ = await services.identity.create_session(
        user.github_user_id, services.config.session_ttl_seconds
    )
    log_audit("auth.login", user=user.github_user_id, username=user.github_username)

    response = RedirectResponse("/app", status_code=302)
    _set_cookie(response, services, SESSION_COOKIE, session_id, services.config.session_ttl_seconds)
    _set_cookie(response, services, STATE_COOKIE, "", 0)
    return response


@router.post("/auth/logout")
async def logout(request: Request, services: Services = Depends(get_services)):
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        await services.identity.delete_session(session_id)
    log_audit("auth.logout")

    response = JSONResponse({"ok": True})
    _set_cookie(response, services, SESSION_COOKIE, "", 0)
    return response


@router.post("/auth/device")
async def start_device_flow(services: Services = Depends(get_services)):
    try:
        device = await services.oauth.start_device_flow()
    except (GitzenError, httpx.HTTPError) as e:
        logger.warning("Device flow could not start: %s", e)
        return JSONResponse({"error": "Failed to initiate device flow"}, status_code=502)
    return device.to_dict()


@router.post("/auth/device/token")
async def poll_device_flow(payload: DeviceTokenRequest, services: Services = Depends(get_services)):
    """
    Poll a device flow. On success the CLI receives a 30-day API token
    covering every repo, without delete or publish rights.
    """
    if not payload.device_code:
        return JSONResponse({"error": "deviceCode is required"}, status_code=400)

    result = await services.oauth.poll_device_flow(payload.device_code)
    if result.status == PENDING:
        return {"status": PENDING}
    if result.status == SLOW_DOWN:
        return {"status": SLOW_DOWN, "interval": result.interval}
    if result.status == EXPIRED:
        return JSONResponse({"status": EXPIRED}, status_code=410)
    if result.status == DENIED:
        return JSONResponse({"status": DENIED}, status_code=403)
    if result.status != SUCCESS or result.tokens is None:
        return JSONResponse({"error": result.error or "Unknown error"}, status_code=400)

    try:
        remote_user = await services.oauth.fetch_user(result.tokens.access_token)
    except (GitzenError, httpx.HTTPError) as e:
        logger.warning("Could not identify the device-flow user: %s", e)
        return JSONResponse({"error": "Failed to fetch GitHub user"}, status_code=502)

    user = await services.identity.upsert_user(remote_user, result.tokens)
    created = await services.tokens.issue_device_token(user.github_user_id, user.github_username)
    return {
        "status": SUCCESS,
        "token": created.token,
        "expiresAt": created.record.expires_at,
        "username": user.github_username,
    }
