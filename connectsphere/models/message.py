# connectsphere/models/message.py
from dataclasses import dataclass
from typing import Optional

@dataclass
class DirectMessage:
    """
    Document layout of 'messages/{chat_id}/messages'.
    created_at is assigned by the server on write.
    """
    sender_id: str
    sender_name: str
    recipient_id: str
    text: str
    sender_avatar: Optional[str] = None

    def to_document(self, created_at) -> dict:
        return {
            "from": self.sender_id,
            "sender_name": self.sender_name,
            "sender_avatar": self.sender_avatar or "",
            "recipient_id": self.recipient_id,
            "text": self.text,
            "created_at": created_at,
        }

@dataclass
class GroupMessage:
    """Document layout of 'groups/{group_id}/messages'."""
    sender_id: str
    sender_name: str
    text: str

    def to_document(self, created_at) -> dict:
        return {
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "text": self.text,
            "created_at": created_at,
        }
