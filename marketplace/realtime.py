"""Chat relay over WebSocket.

Frames are JSON objects ``{"event": <name>, "data": <payload>}``. A socket
joins a chat room explicitly with ``joinChat``; messages are stored on the chat
document first and only then broadcast to the room.
"""
import json
import logging
from collections import defaultdict
from datetime import datetime, timezone

from fastapi import HTTPException, WebSocket
from pydantic import ValidationError

from marketplace.database import Collections, get_db
from marketplace.schemas.chat import ChatMessage, MessageStatus, SeenMessage, SendMessage
from marketplace.utils.mongo import obj_id

logger = logging.getLogger(__name__)

PRESENCE_EVENTS = ("typing", "online", "offline")


class ChatRooms:
    """Room membership of the sockets connected to this process."""

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)

    def join(self, room: str, websocket: WebSocket):
        self.rooms[room].add(websocket)

    def leave_all(self, websocket: WebSocket):
        for room in list(self.rooms):
            self.rooms[room].discard(websocket)
            if not self.rooms[room]:
                del self.rooms[room]

    def members(self, room: str) -> set[WebSocket]:
        return set(self.rooms.get(room, ()))

    async def send(self, websocket: WebSocket, event: str, data) -> bool:
        try:
            await websocket.send_json({"event": event, "data": data})
            return True
        except Exception:
            logger.info("Dropping unreachable socket")
            self.leave_all(websocket)
            return False

    async def broadcast(self, room: str, event: str, data, exclude: WebSocket | None = None):
        for member in self.members(room):
            if member is not exclude:
                await self.send(member, event, data)


async def store_message(payload: SendMessage) -> dict:
    record = ChatMessage(
        sender_id=payload.sender_id,
        message=payload.message,
        timestamp=payload.timestamp or datetime.now(timezone.utc).isoformat(),
        is_image=payload.is_image,
        status=MessageStatus.sent,
    ).model_dump(mode="json")

    result = await get_db()[Collections.CHATS].update_one(
        {"_id": obj_id(payload.chat_id, "chat ID")},
        {"$push": {"messages": record}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Chat not found")
    return record


async def mark_seen(payload: SeenMessage):
    result = await get_db()[Collections.CHATS].update_one(
        {"_id": obj_id(payload.chat_id, "chat ID"), "messages.timestamp": payload.message_timestamp},
        {"$set": {"messages.$.status": MessageStatus.seen.value}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Message not found")


class ChatRelay:
    def __init__(self, rooms: ChatRooms):
        self.rooms = rooms

    async def error(self, websocket: WebSocket, message: str):
        await self.rooms.send(websocket, "messageError", {"error": message})

    async def handle(self, websocket: WebSocket, raw: str):
        try:
            frame = json.loads(raw)
            event = frame["event"]
            data = frame.get("data")
        except (ValueError, KeyError, TypeError, AttributeError):
            await self.error(websocket, "Malformed frame")
            return

        handler = {
            "joinChat": self.join_chat,
            "sendMessage": self.send_message,
            "messageSeen": self.message_seen,
        }.get(event)
        if handler is None and event in PRESENCE_EVENTS:
            await self.presence(websocket, event, data)
            return
        if handler is None:
            await self.error(websocket, f"Unknown event: {event}")
            return

        try:
            await handler(websocket, data)
        except ValidationError as exc:
            await self.error(websocket, f"Invalid {event} payload: {exc.error_count()} error(s)")
        except HTTPException as exc:
            await self.error(websocket, exc.detail)
        except Exception:
            logger.exception("Chat event %s failed", event)
            await self.error(websocket, f"Failed to process {event}")

    async def join_chat(self, websocket: WebSocket, chat_id):
        if not isinstance(chat_id, str) or not chat_id:
            await self.error(websocket, "Chat ID is required")
            return
        self.rooms.join(chat_id, websocket)
        logger.info("Socket joined chat %s", chat_id)
        await self.rooms.send(websocket, "joinedChat", {"chat_id": chat_id})

    async def send_message(self, websocket: WebSocket, data):
        payload = SendMessage.model_validate(data)
        # nothing reaches the room unless it was stored
        record = await store_message(payload)
        await self.rooms.broadcast(payload.chat_id, "receiveMessage", record)

    async def message_seen(self, websocket: WebSocket, data):
        payload = SeenMessage.model_validate(data)
        await mark_seen(payload)
        await self.rooms.broadcast(
            payload.chat_id, "messageSeen", {"message_timestamp": payload.message_timestamp}
        )

    async def presence(self, websocket: WebSocket, event: str, chat_id):
        if not isinstance(chat_id, str) or not chat_id:
            await self.error(websocket, "Chat ID is required")
            return
        await self.rooms.broadcast(chat_id, event, {"chat_id": chat_id}, exclude=websocket)


rooms = ChatRooms()
relay = ChatRelay(rooms)
