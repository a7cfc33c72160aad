# connectsphere/api/friends/services.py
"""
Friend requests and friend edges.

The relationship between a viewer and a subject is not stored as a single
record; it is derived from the two friend-edge halves and the pending
requests in either direction:

    none --send--> sent --cancel--> none
    received --accept--> friends
    received --decline--> none

Accepted and declined requests are terminal; asking again creates a new
request document.
"""
import logging
from dataclasses import asdict
from typing import Callable, Optional, Dict, Any, List

from firebase_admin import firestore

from connectsphere.api.messages.services import Subscription
from connectsphere.core.exceptions import ConflictError, NotFoundError
from connectsphere.models.friend import FriendEdge, FriendRequest, Relationship, RequestStatus
from connectsphere.utils.datetime_utils import DateTimeUtils

class FriendService:
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.requests_ref = self.db.collection('friend_requests')

    # --- lookups ---
    def _edge_ref(self, user_id: str, peer_id: str):
        return self.users_ref.document(user_id).collection('friends').document(peer_id)

    def _pending(self, from_id: str, to_id: str) -> List[Any]:
        query = (self.requests_ref
                 .where('from', '==', from_id)
                 .where('to', '==', to_id)
                 .where('status', '==', RequestStatus.PENDING.value))
        return list(query.stream())

    def _profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self.users_ref.document(user_id).get()
        return doc.to_dict() if doc.exists else None

    def are_friends(self, user_id: str, peer_id: str) -> bool:
        """True only when both edge halves exist."""
        snapshots = list(self.db.get_all([self._edge_ref(user_id, peer_id), self._edge_ref(peer_id, user_id)]))
        return len(snapshots) == 2 and all(s.exists for s in snapshots)

    def get_relationship(self, viewer_id: str, subject_id: str) -> Relationship:
        if viewer_id == subject_id:
            return Relationship.OWN_PROFILE
        if self.are_friends(viewer_id, subject_id):
            return Relationship.FRIENDS
        if self._pending(viewer_id, subject_id):
            return Relationship.SENT
        if self._pending(subject_id, viewer_id):
            return Relationship.RECEIVED
        return Relationship.NONE

    # --- transitions ---
    def send_request(self, viewer_id: str, subject_id: str) -> Dict[str, Any]:
        """
        none -> sent.
        The pending check is a plain read, not a transaction: two concurrent
        sends can still both pass it.
        """
        subject = self._profile(subject_id)
        if subject is None:
            raise NotFoundError("User not found.")

        state = self.get_relationship(viewer_id, subject_id)
        if state is not Relationship.NONE:
            raise ConflictError(f"Cannot send a friend request in state '{state.value}'.")

        viewer = self._profile(viewer_id) or {}
        request = FriendRequest(
            from_uid=viewer_id,
            to_uid=subject_id,
            from_name=viewer.get('name') or "Anonymous User",
            from_avatar=viewer.get('avatar')
        )
        _, doc_ref = self.requests_ref.add(request.to_document())
        logging.info(f"Friend request {doc_ref.id}: {viewer_id} -> {subject_id}")
        return {"request_id": doc_ref.id, **request.to_document()}

    def cancel_request(self, viewer_id: str, subject_id: str) -> int:
        """sent -> none. Deletes every pending viewer -> subject request."""
        pending = self._pending(viewer_id, subject_id)
        if not pending:
            raise NotFoundError("No pending request to cancel.")
        for doc in pending:
            doc.reference.delete()
        logging.info(f"Friend request cancelled: {viewer_id} -> {subject_id}")
        return len(pending)

    def _load_request_for_recipient(self, viewer_id: str, request_id: str):
        request_ref = self.requests_ref.document(request_id)
        doc = request_ref.get()
        if not doc.exists:
            raise NotFoundError("Friend request not found.")
        data = doc.to_dict()
        if data.get('to') != viewer_id:
            raise PermissionError("Only the recipient can respond to this request.")
        if data.get('status') != RequestStatus.PENDING.value:
            raise ConflictError(f"Request already {data.get('status')}.")
        return request_ref, data

    def accept_request(self, viewer_id: str, request_id: str) -> Dict[str, Any]:
        """
        received -> friends.
        The status change and both edge halves are committed in one batch.
        Edge documents are keyed by the peer uid, so they can never duplicate.
        """
        request_ref, data = self._load_request_for_recipient(viewer_id, request_id)
        sender_id = data['from']

        viewer = self._profile(viewer_id) or {}
        sender = self._profile(sender_id) or {}
        now = DateTimeUtils.now()
        viewer_edge = FriendEdge(uid=sender_id, name=sender.get('name') or data.get('from_name') or "Anonymous",
                                 avatar=sender.get('avatar') or data.get('from_avatar'), created_at=now)
        sender_edge = FriendEdge(uid=viewer_id, name=viewer.get('name') or "Anonymous",
                                 avatar=viewer.get('avatar'), created_at=now)

        batch = self.db.batch()
        batch.update(request_ref, {'status': RequestStatus.ACCEPTED.value, 'updated_at': now})
        batch.set(self._edge_ref(viewer_id, sender_id), asdict(viewer_edge))
        batch.set(self._edge_ref(sender_id, viewer_id), asdict(sender_edge))
        try:
            batch.commit()
        except Exception as e:
            logging.error(f"Accepting friend request failed (request_id: {request_id}): {e}", exc_info=True)
            raise
        logging.info(f"Friend request accepted: {sender_id} <-> {viewer_id}")
        return asdict(viewer_edge)

    def decline_request(self, viewer_id: str, request_id: str) -> None:
        """received -> none. No edges are written."""
        request_ref, _ = self._load_request_for_recipient(viewer_id, request_id)
        request_ref.update({'status': RequestStatus.DECLINED.value, 'updated_at': DateTimeUtils.now()})
        logging.info(f"Friend request declined: {request_id}")

    def respond_to_user(self, viewer_id: str, subject_id: str, accept: bool):
        """Accepts or declines the pending request the subject sent to the viewer."""
        pending = self._pending(subject_id, viewer_id)
        if not pending:
            raise NotFoundError("No pending request from this user.")
        request_id = pending[0].id
        if accept:
            return self.accept_request(viewer_id, request_id)
        return self.decline_request(viewer_id, request_id)

    # --- listings ---
    def _incoming_query(self, viewer_id: str):
        return (self.requests_ref
                .where('to', '==', viewer_id)
                .where('status', '==', RequestStatus.PENDING.value))

    @staticmethod
    def _request_rows(docs) -> List[Dict[str, Any]]:
        requests = [{"request_id": doc.id, **DateTimeUtils.from_firestore(doc.to_dict())} for doc in docs]
        requests.sort(key=lambda r: DateTimeUtils.sort_key(r.get('created_at')), reverse=True)
        return requests

    def list_incoming_requests(self, viewer_id: str) -> List[Dict[str, Any]]:
        return self._request_rows(self._incoming_query(viewer_id).stream())

    def subscribe_incoming_requests(self, viewer_id: str,
                                    callback: Callable[[List[Dict[str, Any]]], None]) -> Subscription:
        """Redelivers the viewer's full pending list, newest first, on every change."""
        def on_snapshot(docs, changes, read_time):
            try:
                callback(self._request_rows(docs))
            except Exception as e:
                logging.error(f"Friend request subscriber failed (viewer: {viewer_id}): {e}", exc_info=True)
        return Subscription(self._incoming_query(viewer_id).on_snapshot(on_snapshot))

    def _mutual_edges(self, user_id: str) -> List[Any]:
        """The user's edge halves whose reverse half also exists."""
        edges = list(self.users_ref.document(user_id).collection('friends').stream())
        if not edges:
            return []
        reverse = self.db.get_all([self._edge_ref(edge.id, user_id) for edge in edges])
        mutual = {snapshot.reference.path.split("/")[1] for snapshot in reverse if snapshot.exists}
        return [edge for edge in edges if edge.id in mutual]

    def list_friends(self, user_id: str) -> List[Dict[str, Any]]:
        return [{**DateTimeUtils.from_firestore(doc.to_dict()), "uid": doc.id} for doc in self._mutual_edges(user_id)]

    def get_friend_ids(self, user_id: str) -> List[str]:
        return [doc.id for doc in self._mutual_edges(user_id)]
