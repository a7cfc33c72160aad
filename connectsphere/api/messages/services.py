# connectsphere/api/messages/services.py
"""
One-to-one conversations and group chats.

A 1:1 conversation is keyed by the two participant uids, sorted and joined
with '_', so both sides derive the same id without coordination. Messages
are append-only and ordered by their server-assigned timestamp.

Live queries redeliver the whole ordered list on every change.
"""
import logging
from typing import Callable, Optional, Dict, Any, List

from firebase_admin import firestore

from connectsphere.core.exceptions import NotFoundError
from connectsphere.models.message import DirectMessage, GroupMessage
from connectsphere.utils.datetime_utils import DateTimeUtils

Snapshot = List[Dict[str, Any]]


def conversation_id(user_a: str, user_b: str) -> str:
    if user_a == user_b:
        raise ValueError("A conversation needs two different participants.")
    return "_".join(sorted([user_a, user_b]))


class Subscription:
    """Handle returned by the subscribe_* methods."""

    def __init__(self, watch):
        self._watch = watch
        self.active = True

    def unsubscribe(self):
        if self.active:
            self._watch.unsubscribe()
            self.active = False


def _rows(docs) -> Snapshot:
    rows = [{"message_id": doc.id, **DateTimeUtils.from_firestore(doc.to_dict())} for doc in docs]
    rows.sort(key=lambda m: DateTimeUtils.sort_key(m.get('created_at')))
    return rows


class MessageService:
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.conversations_ref = self.db.collection('messages')
        self.groups_ref = self.db.collection('groups')

    @staticmethod
    def _required_text(value: Optional[str], field: str = "Message") -> str:
        text = (value or "").strip()
        if not text:
            raise ValueError(f"{field} is required.")
        return text

    def _sender(self, user_id: str) -> Dict[str, Any]:
        doc = self.users_ref.document(user_id).get()
        return doc.to_dict() if doc.exists else {}

    def _subscribe(self, query, callback: Callable[[Snapshot], None]) -> Subscription:
        def on_snapshot(docs, changes, read_time):
            try:
                callback(_rows(docs))
            except Exception as e:
                logging.error(f"Message subscriber failed: {e}", exc_info=True)
        return Subscription(query.on_snapshot(on_snapshot))

    # --- 1:1 conversations ---
    def _messages_query(self, user_a: str, user_b: str):
        chat_ref = self.conversations_ref.document(conversation_id(user_a, user_b))
        return chat_ref.collection('messages').order_by('created_at', direction=firestore.Query.ASCENDING)

    def send_direct_message(self, sender_id: str, recipient_id: str, text: str) -> Dict[str, Any]:
        """Creates the conversation document on first use, then appends the message."""
        text = self._required_text(text)
        chat_id = conversation_id(sender_id, recipient_id)
        if not self.users_ref.document(recipient_id).get().exists:
            raise NotFoundError("Recipient not found.")

        chat_ref = self.conversations_ref.document(chat_id)
        if not chat_ref.get().exists:
            chat_ref.set({
                "participants": sorted([sender_id, recipient_id]),
                "created_at": firestore.SERVER_TIMESTAMP,
            })

        sender = self._sender(sender_id)
        message = DirectMessage(
            sender_id=sender_id,
            sender_name=sender.get('name') or "Anonymous",
            sender_avatar=sender.get('avatar'),
            recipient_id=recipient_id,
            text=text
        )
        try:
            _, message_ref = chat_ref.collection('messages').add(message.to_document(firestore.SERVER_TIMESTAMP))
        except Exception as e:
            logging.error(f"Direct message failed ({chat_id}): {e}", exc_info=True)
            raise
        stored = message_ref.get().to_dict()
        return {"message_id": message_ref.id, "chat_id": chat_id, **DateTimeUtils.from_firestore(stored)}

    def list_direct_messages(self, user_a: str, user_b: str) -> Snapshot:
        return _rows(self._messages_query(user_a, user_b).stream())

    def subscribe_direct_messages(self, user_a: str, user_b: str, callback: Callable[[Snapshot], None]) -> Subscription:
        return self._subscribe(self._messages_query(user_a, user_b), callback)

    # --- groups ---
    def create_group(self, name: str, created_by: str) -> Dict[str, Any]:
        name = self._required_text(name, "Group name")
        _, group_ref = self.groups_ref.add({
            "name": name,
            "created_by": created_by,
            "created_at": firestore.SERVER_TIMESTAMP,
        })
        logging.info(f"Group created: {group_ref.id} by {created_by}")
        return {"group_id": group_ref.id, **DateTimeUtils.from_firestore(group_ref.get().to_dict())}

    @staticmethod
    def _group_rows(docs) -> Snapshot:
        return [{"group_id": doc.id, **DateTimeUtils.from_firestore(doc.to_dict())} for doc in docs]

    def list_groups(self) -> Snapshot:
        return self._group_rows(self.groups_ref.stream())

    def subscribe_groups(self, callback: Callable[[Snapshot], None]) -> Subscription:
        def on_snapshot(docs, changes, read_time):
            try:
                callback(self._group_rows(docs))
            except Exception as e:
                logging.error(f"Group list subscriber failed: {e}", exc_info=True)
        return Subscription(self.groups_ref.on_snapshot(on_snapshot))

    def get_group(self, group_id: str) -> Dict[str, Any]:
        doc = self.groups_ref.document(group_id).get()
        if not doc.exists:
            raise NotFoundError("Group not found.")
        return {"group_id": doc.id, **DateTimeUtils.from_firestore(doc.to_dict())}

    def _group_messages_query(self, group_id: str):
        return (self.groups_ref.document(group_id).collection('messages')
                .order_by('created_at', direction=firestore.Query.ASCENDING))

    def send_group_message(self, group_id: str, sender_id: str, text: str) -> Dict[str, Any]:
        """Any signed-in user may post; groups keep no member list."""
        text = self._required_text(text)
        self.get_group(group_id)

        sender = self._sender(sender_id)
        message = GroupMessage(sender_id=sender_id, sender_name=sender.get('name') or "Anonymous", text=text)
        _, message_ref = (self.groups_ref.document(group_id).collection('messages')
                          .add(message.to_document(firestore.SERVER_TIMESTAMP)))
        return {"message_id": message_ref.id, "group_id": group_id,
                **DateTimeUtils.from_firestore(message_ref.get().to_dict())}

    def list_group_messages(self, group_id: str) -> Snapshot:
        self.get_group(group_id)
        return _rows(self._group_messages_query(group_id).stream())

    def subscribe_group_messages(self, group_id: str, callback: Callable[[Snapshot], None]) -> Subscription:
        return self._subscribe(self._group_messages_query(group_id), callback)
