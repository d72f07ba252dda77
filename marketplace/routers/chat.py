import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, WebSocket, WebSocketDisconnect
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from marketplace.database import Collections
from marketplace.dependencies import ClientUser, CurrentUser, SellerUser, get_database, get_storage
from marketplace.exceptions import Forbidden, NotFound
from marketplace.realtime import relay, rooms
from marketplace.schemas.chat import ChatInitiate, ChatInitiated, ChatRead, ChatSummary, FileUploaded
from marketplace.schemas.common import Message
from marketplace.utils.accounts import full_name
from marketplace.utils.mongo import obj_id, utcnow, with_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _summary(chat: dict) -> dict:
    messages = chat.get("messages") or []
    latest = messages[-1] if messages else {}
    created = chat.get("created_at")
    return {
        "id": str(chat["_id"]),
        "product_name": chat.get("product_name") or "Unknown Product",
        "client_name": chat.get("client_name") or "Unknown Client",
        "latest_message": latest.get("message", "No messages yet"),
        "latest_message_time": latest.get("timestamp") or (created.isoformat() if created else ""),
    }


async def _summaries(db, query: dict) -> list[dict]:
    chats = [_summary(c) async for c in db[Collections.CHATS].find(query)]
    chats.sort(key=lambda c: c["latest_message_time"], reverse=True)
    return chats


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket):
    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            await relay.handle(websocket, raw)
    except WebSocketDisconnect:
        logger.info("Chat socket disconnected")
    finally:
        rooms.leave_all(websocket)


@router.post("/chat/upload", response_model=FileUploaded)
async def upload_chat_file(
    _: CurrentUser,
    file: UploadFile = File(...),
    files=Depends(get_storage),
):
    return {"file_path": await files.save(file, "chat")}


@router.post("/chat/initiate", response_model=ChatInitiated)
async def initiate_chat(data: ChatInitiate, current_user: ClientUser, db=Depends(get_database)):
    product = await db[Collections.PRODUCTS].find_one({"_id": obj_id(data.product_id, "product ID")})
    if product is None:
        raise NotFound("Product not found")
    client = await db[Collections.USERS].find_one({"_id": obj_id(current_user.user_id, "client ID")})
    if client is None:
        raise NotFound("Client not found")

    key = {
        "product_id": data.product_id,
        "client_id": current_user.user_id,
        "seller_id": product.get("seller_id"),
    }
    chats = db[Collections.CHATS]
    try:
        chat = await chats.find_one_and_update(
            key,
            {"$setOnInsert": {
                "product_name": product.get("title"),
                "client_name": full_name(client),
                "messages": [],
                "created_at": utcnow(),
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        # lost the upsert race, the other request created it
        chat = await chats.find_one(key)

    return {"chat_id": str(chat["_id"])}


@router.get("/chat/seller", response_model=List[ChatSummary])
async def seller_chats(current_user: SellerUser, db=Depends(get_database)):
    return await _summaries(db, {"seller_id": current_user.user_id})


@router.get("/chat/client", response_model=List[ChatSummary])
async def client_chats(current_user: ClientUser, db=Depends(get_database)):
    return await _summaries(db, {"client_id": current_user.user_id})


@router.get("/chat/{chat_id}", response_model=ChatRead)
async def get_chat(chat_id: str, current_user: CurrentUser, db=Depends(get_database)):
    chat = await db[Collections.CHATS].find_one({"_id": obj_id(chat_id, "chat ID")})
    if chat is None:
        raise NotFound("Chat not found")
    if current_user.user_id not in (chat.get("client_id"), chat.get("seller_id")):
        raise Forbidden("Unauthorized to access this chat")
    return with_id(chat)


@router.delete("/chat/seller/{chat_id}", response_model=Message)
async def delete_chat(chat_id: str, current_user: SellerUser, db=Depends(get_database)):
    result = await db[Collections.CHATS].delete_one(
        {"_id": obj_id(chat_id, "chat ID"), "seller_id": current_user.user_id}
    )
    if result.deleted_count == 0:
        raise NotFound("Chat not found or you are not authorized to delete it")
    return {"detail": "Chat deleted successfully"}
