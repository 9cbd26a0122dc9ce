"""
WebSocket router for real-time notifications and application chat.

Provides a WebSocket endpoint that:
1. Authenticates users via JWT query parameter or session cookie
2. Joins each connection to its user's room
3. Handles room membership, typing indicators and chat messages
"""

import json
import logging
from functools import partial
from typing import Any
from uuid import UUID

import anyio
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from bpm.core import permissions
from bpm.core.deps import COOKIE_NAME, resolve_user
from bpm.core.errors import ServiceError
from bpm.core.websocket import application_room, manager, user_room
from bpm.db.enums import MessageType, RealtimeEvent, Role
from bpm.db.session import SessionLocal
from bpm.schemas.auth import UserSession
from bpm.schemas.message import MessageRead
from bpm.services import application_service, message_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])

CLOSE_UNAUTHENTICATED = 4001


def _with_db(fn, *args):
    """Run a sync database call with its own session (called in a worker thread)."""
    db = SessionLocal()
    try:
        return fn(db, *args)
    finally:
        db.close()


def _authenticate(db, token: str | None) -> UserSession | None:
    try:
        user = resolve_user(db, token)
    except HTTPException:
        return None
    if not Role.has_value(user.role):
        return None
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        full_name=user.full_name,
    )


def _can_join(db, application_id: UUID, session: UserSession) -> bool:
    try:
        application = application_service.get_application_or_404(db, application_id)
    except ServiceError:
        return False
    return permissions.can_access_application(session, application)


def _send(db, session: UserSession, application_id: UUID, content: str, message_type: str):
    message = message_service.send_message(
        db, application_id, session, content, MessageType(message_type)
    )
    return MessageRead.model_validate(message).model_dump(mode="json")


def _parse_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


async def _reply(websocket: WebSocket, event: str, data: Any) -> None:
    await websocket.send_text(json.dumps({"type": event, "data": data}, default=str))


@router.websocket("/notifications")
async def websocket_notifications(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """
    WebSocket endpoint for real-time notifications.

    Authenticates via:
    1. JWT token in query parameter (?token=...)
    2. Or session cookie (for browser clients)

    Client frames are JSON `{"type": ..., "data": ...}` or the plain text
    `ping`. The server pushes notification events to the user's room and
    chat/typing events to joined application rooms.
    """
    session = await anyio.to_thread.run_sync(
        partial(_with_db, _authenticate, token or websocket.cookies.get(COOKIE_NAME))
    )
    if session is None:
        await websocket.close(code=CLOSE_UNAUTHENTICATED, reason="Authentication required")
        return

    await manager.connect(websocket, session.user_id)

    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            if raw == "ping":
                await websocket.send_text("pong")
                continue

            try:
                frame = json.loads(raw)
            except ValueError:
                logger.debug("Ignoring non-JSON frame from user %s", session.user_id)
                continue
            if not isinstance(frame, dict):
                continue

            await _handle_frame(websocket, session, frame.get("type"), frame.get("data") or {})
    finally:
        await manager.disconnect(websocket)


async def _handle_frame(
    websocket: WebSocket,
    session: UserSession,
    frame_type: str | None,
    data: Any,
) -> None:
    if not isinstance(data, dict):
        data = {"value": data}

    if frame_type == "join_user_room":
        # Only the caller's own room; it is joined on connect already
        requested = _parse_uuid(data.get("user_id", data.get("value")))
        if requested == session.user_id:
            await manager.join(websocket, user_room(session.user_id))
        else:
            logger.warning("User %s tried to join room of %s", session.user_id, requested)
        return

    application_id = _parse_uuid(data.get("application_id"))

    if frame_type == "join_application_room":
        if application_id is None:
            return
        allowed = await anyio.to_thread.run_sync(
            partial(_with_db, _can_join, application_id, session)
        )
        if allowed:
            await manager.join(websocket, application_room(application_id))
        else:
            logger.warning(
                "User %s denied application room %s", session.user_id, application_id
            )
        return

    if frame_type == "leave_application_room":
        if application_id is not None:
            await manager.leave(websocket, application_room(application_id))
        return

    if frame_type in ("typing_start", "typing_stop"):
        if application_id is None:
            return
        room = application_room(application_id)
        if room not in manager.get_rooms(websocket):
            return
        await manager.send_to_room(
            room,
            RealtimeEvent.USER_TYPING.value,
            {
                "application_id": str(application_id),
                "user_id": str(session.user_id),
                "full_name": session.full_name,
                "is_typing": frame_type == "typing_start",
            },
            exclude=websocket,
        )
        return

    if frame_type == "send_message":
        await _handle_send_message(websocket, session, application_id, data)
        return

    if frame_type == "mark_messages_read":
        if application_id is None:
            return
        try:
            count = await anyio.to_thread.run_sync(
                partial(
                    _with_db,
                    message_service.mark_messages_read,
                    application_id,
                    session,
                )
            )
        except ServiceError as exc:
            await _reply(websocket, RealtimeEvent.MESSAGE_ERROR.value, {"message": exc.message})
            return
        await manager.send_to_application(
            application_id,
            RealtimeEvent.MESSAGES_READ.value,
            {
                "application_id": str(application_id),
                "reader_id": str(session.user_id),
                "count": count,
            },
        )
        return

    logger.debug("Ignoring unknown frame type %r from user %s", frame_type, session.user_id)


async def _handle_send_message(
    websocket: WebSocket,
    session: UserSession,
    application_id: UUID | None,
    data: dict,
) -> None:
    """Persist a chat message, then fan it out to both parties and the room."""
    if application_id is None:
        await _reply(
            websocket, RealtimeEvent.MESSAGE_ERROR.value, {"message": "application_id is required"}
        )
        return

    try:
        message_type = MessageType(data.get("type") or MessageType.TEXT.value).value
    except ValueError:
        await _reply(
            websocket, RealtimeEvent.MESSAGE_ERROR.value, {"message": "Invalid message type"}
        )
        return

    try:
        message = await anyio.to_thread.run_sync(
            partial(
                _with_db,
                _send,
                session,
                application_id,
                str(data.get("content") or ""),
                message_type,
            )
        )
    except ServiceError as exc:
        await _reply(websocket, RealtimeEvent.MESSAGE_ERROR.value, {"message": exc.message})
        return
    except Exception:
        logger.exception("Failed to send message on application %s", application_id)
        await _reply(
            websocket, RealtimeEvent.MESSAGE_ERROR.value, {"message": "Failed to send message"}
        )
        return

    await manager.send_to_rooms(
        [
            user_room(session.user_id),
            user_room(message["recipient_id"]),
            application_room(application_id),
        ],
        RealtimeEvent.NEW_MESSAGE.value,
        message,
    )
