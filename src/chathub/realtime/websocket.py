"""WebSocket endpoint — /ws?userId=<id>[&token=<jwt>].

Learn: The connection's user id comes from the query string, exactly as
the web client sends it. If a token is supplied it is verified and its
subject wins; a userId that disagrees with the token is refused. Outside
development a token is mandatory, so the query string alone can't claim
someone else's identity.

Close codes used before accept:
    4001  missing / invalid / expired token
    4003  userId does not match the token's subject
"""

import structlog
from fastapi import APIRouter, Depends, WebSocket

from chathub.auth.jwt import JWTAuthVerifier, TokenError, get_auth_verifier
from chathub.config import settings
from chathub.realtime.hub import ConnectionHub, get_hub

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    hub: ConnectionHub = Depends(get_hub),
    verifier: JWTAuthVerifier = Depends(get_auth_verifier),
):
    user_id = websocket.query_params.get("userId")
    token = websocket.query_params.get("token")

    # ── Authentication ──────────────────────────────────────
    if not token and settings.environment != "development":
        await websocket.close(code=4001, reason="Authentication required")
        return

    if token:
        try:
            identity = verifier.identity_from_token(token)
        except TokenError as e:
            logger.info("ws.auth_rejected", error=str(e))
            await websocket.close(code=4001, reason="Invalid or expired token")
            return
        if user_id and user_id != identity:
            logger.info("ws.identity_mismatch", user_id=user_id, token_subject=identity)
            await websocket.close(code=4003, reason="userId does not match token")
            return
        user_id = identity

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()
    await hub.serve(websocket, user_id)
