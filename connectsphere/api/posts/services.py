# connectsphere/api/posts/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Tuple

from firebase_admin import firestore

from connectsphere.core.exceptions import NotFoundError, PartialDeleteError
from connectsphere.models.comment import Comment
from connectsphere.models.post import Post
from connectsphere.services.storage_service import StorageService
from connectsphere.utils.datetime_utils import DateTimeUtils

# Firestore rejects batches with more than 500 writes.
MAX_BATCH_WRITES = 500

class PostService:
    """
    Writes on posts, comments and like sets.
    Posts live under their author: users/{uid}/posts/{post_id}.
    """
    def __init__(self, storage_service: Optional[StorageService] = None, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.storage_service = storage_service
        self.max_batch_writes = MAX_BATCH_WRITES

    def _post_ref(self, owner_id: str, post_id: str):
        return self.users_ref.document(owner_id).collection('posts').document(post_id)

    def _require_post(self, owner_id: str, post_id: str):
        post_ref = self._post_ref(owner_id, post_id)
        doc = post_ref.get()
        if not doc.exists:
            raise NotFoundError("Post not found.")
        return post_ref, doc.to_dict()

    @staticmethod
    def _required_text(value: Optional[str], field: str) -> str:
        text = (value or "").strip()
        if not text:
            raise ValueError(f"{field} is required.")
        return text

    # --- posts ---
    def create_post(self, user_id: str, title: str, content: str,
                    image: Optional[Tuple[str, bytes, Optional[str]]] = None) -> Dict[str, Any]:
        """
        Creates a post. ``image`` is (filename, data, content_type).
        The image is uploaded first; if the document write then fails the
        uploaded blob stays behind and the error propagates.
        """
        title = self._required_text(title, "Title")
        content = self._required_text(content, "Content")

        photo_url = ""
        if image is not None:
            filename, data, content_type = image
            photo_url = self.storage_service.upload_post_image(user_id, filename, data, content_type)

        new_post = Post(title=title, content=content, photo_url=photo_url)
        try:
            _, post_ref = self.users_ref.document(user_id).collection('posts').add(asdict(new_post))
        except Exception as e:
            logging.error(f"Post create failed (user_id: {user_id}, photo: {photo_url or '-'}): {e}", exc_info=True)
            raise
        return {"post_id": post_ref.id, "user_id": user_id, **asdict(new_post)}

    def update_post(self, user_id: str, post_id: str, title: Optional[str] = None,
                    content: Optional[str] = None) -> Dict[str, Any]:
        post_ref, _ = self._require_post(user_id, post_id)

        update_data = {"updated_at": DateTimeUtils.now()}
        if title is not None:
            update_data["title"] = self._required_text(title, "Title")
        if content is not None:
            update_data["content"] = self._required_text(content, "Content")
        post_ref.update(update_data)
        return {"post_id": post_id, "user_id": user_id, **DateTimeUtils.from_firestore(post_ref.get().to_dict())}

    def toggle_like(self, owner_id: str, post_id: str, user_id: str) -> List[str]:
        """
        Adds or removes user_id in the post's like set and returns the new set.
        ArrayUnion/ArrayRemove apply on the server, so concurrent togglers
        by different users do not overwrite each other.
        """
        post_ref, data = self._require_post(owner_id, post_id)
        likes = data.get('likes') if isinstance(data.get('likes'), list) else []

        if user_id in likes:
            post_ref.update({'likes': firestore.ArrayRemove([user_id])})
        else:
            post_ref.update({'likes': firestore.ArrayUnion([user_id])})
        return post_ref.get().to_dict().get('likes', [])

    def delete_post(self, user_id: str, post_id: str) -> int:
        """
        Deletes every comment, then the post, in batched writes.
        Returns the number of comments removed. When the batches stop
        part-way a PartialDeleteError reports what was already removed.
        """
        post_ref, data = self._require_post(user_id, post_id)
        comment_refs = [doc.reference for doc in post_ref.collection('comments').stream()]

        # Comments first; the post goes in the last batch.
        operations = comment_refs + [post_ref]
        deleted = 0
        for start in range(0, len(operations), self.max_batch_writes):
            chunk = operations[start:start + self.max_batch_writes]
            batch = self.db.batch()
            for ref in chunk:
                batch.delete(ref)
            try:
                batch.commit()
            except Exception as e:
                logging.error(f"Post delete stopped after {deleted} comments (post_id: {post_id}): {e}", exc_info=True)
                if deleted == 0:
                    raise
                raise PartialDeleteError(
                    f"Post {post_id} was only partially deleted.",
                    deleted=deleted,
                    remaining=len(comment_refs) - deleted
                ) from e
            deleted += sum(1 for ref in chunk if ref is not post_ref)

        if data.get('photo_url') and self.storage_service:
            self.storage_service.delete_by_url(data['photo_url'])
        logging.info(f"Post deleted: {post_id} ({deleted} comments)")
        return deleted

    # --- comments ---
    def _comment_author_name(self, user_id: str) -> str:
        doc = self.users_ref.document(user_id).get()
        profile = doc.to_dict() if doc.exists else {}
        return profile.get('name') or profile.get('email') or "Anonymous"

    def add_comment(self, owner_id: str, post_id: str, user_id: str, text: str) -> Dict[str, Any]:
        text = self._required_text(text, "Comment")
        post_ref, _ = self._require_post(owner_id, post_id)

        comment = Comment(text=text, author=self._comment_author_name(user_id), author_id=user_id)
        _, comment_ref = post_ref.collection('comments').add(asdict(comment))
        return {"comment_id": comment_ref.id, "post_id": post_id, **asdict(comment)}

    def delete_comment(self, owner_id: str, post_id: str, comment_id: str, user_id: str) -> None:
        comment_ref = self._post_ref(owner_id, post_id).collection('comments').document(comment_id)
        doc = comment_ref.get()
        if not doc.exists:
            raise NotFoundError("Comment not found.")
        if doc.to_dict().get('author_id') != user_id:
            raise PermissionError("Only the author can delete this comment.")
        comment_ref.delete()

    def list_comments(self, owner_id: str, post_id: str) -> List[Dict[str, Any]]:
        post_ref, _ = self._require_post(owner_id, post_id)
        comments = [
            {"comment_id": doc.id, "post_id": post_id, **DateTimeUtils.from_firestore(doc.to_dict())}
            for doc in post_ref.collection('comments').stream()
        ]
        comments.sort(key=lambda c: DateTimeUtils.sort_key(c.get('created_at')))
        return comments
