from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from core.auth import verify_token
from core.exceptions import Unauthorized
from core.validators import utcnow
from api.crud.participant_crud import get_user_participations
from models.participant import ParticipantStatus
from models.user import User
from services.websocket_manager import websocket_manager
from db import SessionLocal
import asyncio
import json
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

HEARTBEAT_INTERVAL = 30
HEARTBEAT_TIMEOUT = 60


def _timestamp() -> str:
    return utcnow().isoformat()


async def send_error(websocket: WebSocket, error_type: str, message: str, code: int = 1008):
    """Accept, report the error to the client and close"""
    await websocket.accept()
    await websocket.send_json({
        "type": "error",
        "error_type": error_type,
        "message": message,
        "code": code,
        "timestamp": _timestamp()
    })
    await websocket.close(code=code, reason=message)


@router.websocket("/ws")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(None)
):
    """
    Live notification channel for the authenticated user.

    Connect with ws://host/ws?token=JWT. Reminders, payment decisions and
    cancellations arrive as {"type": <kind>, "title", "payload", "timestamp"}.
    Send "ping" (or {"type": "ping"}) at least every minute to keep it open.
    """
    if not token:
        await send_error(websocket, "authentication_error", "Token required")
        return

    db = SessionLocal()
    try:
        try:
            token_data = verify_token(token)
        except Unauthorized as e:
            await send_error(websocket, "authentication_error", str(e.detail))
            return

        user = db.query(User).filter(User.id == token_data.user_id).first()
        if not user:
            await send_error(websocket, "authentication_error", "User not found")
            return
        if not user.is_active:
            await send_error(websocket, "authorization_error", "User account is inactive")
            return

        user_id = user.id
        active = [
            p.tournament_id for p in get_user_participations(db, user_id)
            if p.status != ParticipantStatus.REJECTED
        ]
    finally:
        db.close()

    await websocket_manager.connect(websocket, user_id)
    try:
        await websocket.send_json({
            "type": "connected",
            "user_id": user_id,
            "tournament_ids": active,
            "timestamp": _timestamp(),
            "heartbeat_interval": HEARTBEAT_INTERVAL
        })

        last_ping = utcnow()
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=5.0)
            except asyncio.TimeoutError:
                if (utcnow() - last_ping).total_seconds() > HEARTBEAT_TIMEOUT:
                    logger.warning(f"Heartbeat timeout for user {user_id}")
                    break
                continue

            if data == "ping":
                is_ping = True
            else:
                try:
                    is_ping = json.loads(data).get("type") == "ping"
                except (ValueError, AttributeError):
                    is_ping = False

            if is_ping:
                last_ping = utcnow()
                await websocket.send_json({"type": "pong", "timestamp": _timestamp()})

    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected")
    finally:
        await websocket_manager.disconnect(websocket)
