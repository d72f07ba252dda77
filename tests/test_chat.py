import pytest
from bson import ObjectId

from marketplace.database import Collections

from conftest import auth


@pytest.fixture
def chat_id(client, seeded):
    resp = client.post(
        "/chat/initiate",
        json={"product_id": seeded["products"][0]},
        headers=auth(seeded["client"], "client"),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["chat_id"]


def join(ws, chat_id):
    ws.send_json({"event": "joinChat", "data": chat_id})
    assert ws.receive_json() == {"event": "joinedChat", "data": {"chat_id": chat_id}}


# -------- REST --------
async def test_initiate_is_idempotent(client, db, seeded, chat_id):
    resp = client.post(
        "/chat/initiate",
        json={"product_id": seeded["products"][0]},
        headers=auth(seeded["client"], "client"),
    )

    assert resp.json()["chat_id"] == chat_id
    assert await db[Collections.CHATS].count_documents({}) == 1
    chat = await db[Collections.CHATS].find_one({})
    assert chat["seller_id"] == seeded["seller"]
    assert chat["client_name"] == "Ann Buyer"


async def test_only_clients_initiate(client, seeded):
    resp = client.post(
        "/chat/initiate",
        json={"product_id": seeded["products"][0]},
        headers=auth(seeded["seller"], "seller"),
    )
    assert resp.status_code == 403


async def test_chat_visible_to_participants_only(client, seeded, chat_id):
    assert client.get(f"/chat/{chat_id}", headers=auth(seeded["client"], "client")).status_code == 200
    assert client.get(f"/chat/{chat_id}", headers=auth(seeded["seller"], "seller")).status_code == 200
    assert client.get(f"/chat/{chat_id}", headers=auth(ObjectId(), "client")).status_code == 403


async def test_seller_chat_summary_and_delete(client, seeded, chat_id):
    headers = auth(seeded["seller"], "seller")

    [summary] = client.get("/chat/seller", headers=headers).json()
    assert summary["id"] == chat_id
    assert summary["product_name"] == "Phone"
    assert summary["latest_message"] == "No messages yet"

    assert client.delete(f"/chat/seller/{chat_id}", headers=auth(ObjectId(), "seller")).status_code == 404
    assert client.delete(f"/chat/seller/{chat_id}", headers=headers).status_code == 200
    assert client.get("/chat/seller", headers=headers).json() == []


async def test_upload_chat_image(client, seeded):
    resp = client.post(
        "/chat/upload",
        files={"file": ("pic.jpg", b"jpeg", "image/jpeg")},
        headers=auth(seeded["client"], "client"),
    )
    assert resp.json() == {"file_path": "/uploads/chat/pic.jpg"}


# -------- WebSocket relay --------
async def test_message_is_stored_then_broadcast(client, db, seeded, chat_id):
    with client.websocket_connect("/ws/chat") as buyer, client.websocket_connect("/ws/chat") as seller:
        join(buyer, chat_id)
        join(seller, chat_id)

        buyer.send_json({"event": "sendMessage", "data": {
            "chat_id": chat_id, "sender_id": seeded["client"],
            "message": "Is it still available?", "timestamp": "2024-05-01T10:00:00Z",
        }})

        expected = {
            "sender_id": seeded["client"], "message": "Is it still available?",
            "timestamp": "2024-05-01T10:00:00Z", "is_image": False, "status": "sent",
        }
        assert buyer.receive_json() == {"event": "receiveMessage", "data": expected}
        assert seller.receive_json() == {"event": "receiveMessage", "data": expected}

    chat = await db[Collections.CHATS].find_one({"_id": ObjectId(chat_id)})
    assert chat["messages"] == [expected]


async def test_message_to_unknown_chat_is_not_broadcast(client, seeded, chat_id):
    ghost = str(ObjectId())
    with client.websocket_connect("/ws/chat") as sender, client.websocket_connect("/ws/chat") as other:
        join(sender, ghost)
        join(other, ghost)

        sender.send_json({"event": "sendMessage", "data": {
            "chat_id": ghost, "sender_id": seeded["client"], "message": "hello",
        }})
        assert sender.receive_json() == {"event": "messageError", "data": {"error": "Chat not found"}}

        # the next frame the other member sees is the later presence event, not the message
        sender.send_json({"event": "typing", "data": ghost})
        assert other.receive_json() == {"event": "typing", "data": {"chat_id": ghost}}


async def test_message_seen_marks_only_that_message(client, db, seeded, chat_id):
    with client.websocket_connect("/ws/chat") as buyer, client.websocket_connect("/ws/chat") as seller:
        join(buyer, chat_id)
        join(seller, chat_id)

        for text, ts in (("hi", "t1"), ("still there?", "t2"), ("hello?", "t3")):
            buyer.send_json({"event": "sendMessage", "data": {
                "chat_id": chat_id, "sender_id": seeded["client"], "message": text, "timestamp": ts,
            }})
            buyer.receive_json()
            seller.receive_json()

        seller.send_json({"event": "messageSeen", "data": {"chat_id": chat_id, "message_timestamp": "t2"}})
        seen = {"event": "messageSeen", "data": {"message_timestamp": "t2"}}
        assert buyer.receive_json() == seen
        assert seller.receive_json() == seen

        seller.send_json({"event": "messageSeen", "data": {"chat_id": chat_id, "message_timestamp": "nope"}})
        assert seller.receive_json()["event"] == "messageError"

    chat = await db[Collections.CHATS].find_one({"_id": ObjectId(chat_id)})
    statuses = {m["timestamp"]: m["status"] for m in chat["messages"]}
    assert statuses == {"t1": "sent", "t2": "seen", "t3": "sent"}


async def test_presence_skips_sender(client, seeded, chat_id):
    with client.websocket_connect("/ws/chat") as buyer, client.websocket_connect("/ws/chat") as seller:
        join(buyer, chat_id)
        join(seller, chat_id)

        buyer.send_json({"event": "online", "data": chat_id})
        assert seller.receive_json() == {"event": "online", "data": {"chat_id": chat_id}}

        buyer.send_json({"event": "sendMessage", "data": {
            "chat_id": chat_id, "sender_id": seeded["client"], "message": "ping",
        }})
        # the buyer never got its own presence frame
        assert buyer.receive_json()["event"] == "receiveMessage"


async def test_bad_frames(client, chat_id):
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "messageError"

        ws.send_json({"event": "dance", "data": chat_id})
        assert ws.receive_json() == {"event": "messageError", "data": {"error": "Unknown event: dance"}}

        ws.send_json({"event": "sendMessage", "data": {"chat_id": chat_id}})
        assert ws.receive_json()["event"] == "messageError"
