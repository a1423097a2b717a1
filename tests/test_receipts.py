from uuid import UUID

from pulse_chat_app.chating.models.message_model import MessageModel
from pulse_chat_app.chating.utils import receipts, reactions


def _chat(client, headers, other_id):
    return client.post("/api/chats/individual", headers=headers, json={"otherUserId": other_id}).json()


def test_mark_read_twice_keeps_one_receipt(client, register, seed_messages, db_call):
    _, alice_id, alice = register("alice")
    _, bob_id, _ = register("bob")
    chat_id = UUID(_chat(client, alice, bob_id)["id"])
    (message,) = seed_messages(chat_id, UUID(bob_id), ["hi"])

    first = db_call(receipts.mark_read, chat_id, UUID(alice_id), [message.id])
    second = db_call(receipts.mark_read, chat_id, UUID(alice_id), [message.id])

    stored = db_call(MessageModel.get, message.id)
    assert first == 1
    assert second == 0
    assert [r.user_id for r in stored.read_by] == [UUID(alice_id)]


def test_sender_does_not_read_own_message(client, register, seed_messages, db_call):
    _, alice_id, alice = register("alice")
    _, bob_id, _ = register("bob")
    chat_id = UUID(_chat(client, alice, bob_id)["id"])
    (message,) = seed_messages(chat_id, UUID(bob_id), ["hi"])

    assert db_call(receipts.mark_read, chat_id, UUID(bob_id), [message.id]) == 0
    assert db_call(receipts.count_unread, chat_id, UUID(alice_id)) == 1
    assert db_call(receipts.count_unread, chat_id, UUID(bob_id)) == 0


def test_mark_delivered_is_idempotent(client, register, seed_messages, db_call):
    _, alice_id, alice = register("alice")
    _, bob_id, _ = register("bob")
    chat_id = UUID(_chat(client, alice, bob_id)["id"])
    seed_messages(chat_id, UUID(bob_id), ["one", "two"])
    seed_messages(chat_id, UUID(alice_id), ["three"])

    assert db_call(receipts.mark_delivered, chat_id, UUID(alice_id)) == 2
    assert db_call(receipts.mark_delivered, chat_id, UUID(alice_id)) == 0


def test_set_reaction_replaces_in_place(client, register, seed_messages, db_call):
    _, alice_id, alice = register("alice")
    _, bob_id, _ = register("bob")
    chat_id = UUID(_chat(client, alice, bob_id)["id"])
    (message,) = seed_messages(chat_id, UUID(bob_id), ["hi"])

    db_call(reactions.set_reaction, message.id, UUID(alice_id), "👍")
    db_call(reactions.set_reaction, message.id, UUID(bob_id), "😂")
    result = db_call(reactions.set_reaction, message.id, UUID(alice_id), "🔥")

    by_user = {r.user_id: r.emoji for r in result}
    assert len(result) == 2
    assert by_user == {UUID(alice_id): "🔥", UUID(bob_id): "😂"}

    result = db_call(reactions.remove_reaction, message.id, UUID(alice_id))
    assert [r.user_id for r in result] == [UUID(bob_id)]
