# connectsphere/api/feed/services.py
"""
Read-time feed aggregation.

A viewer's feed is built on every request: resolve the friend ids, fan out
one posts query and one profile read per author, merge and sort, then fan
out again for each post's comments. Nothing is cached or precomputed.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Dict, Any, List

from firebase_admin import firestore

from connectsphere.api.friends.services import FriendService
from connectsphere.utils.datetime_utils import DateTimeUtils

UNKNOWN_AUTHOR = "Unknown"

class FeedService:
    def __init__(self, friend_service: FriendService, db=None, max_workers: Optional[int] = None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.friend_service = friend_service
        self.max_workers = max_workers

    def _posts_ref(self, user_id: str):
        return self.users_ref.document(user_id).collection('posts')

    def _map(self, fn, items: List[Any]) -> List[Any]:
        if not items:
            return []
        workers = self.max_workers or len(items)
        with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
            return list(pool.map(fn, items))

    def _author_posts(self, user_id: str) -> List[Dict[str, Any]]:
        """One author's posts, newest first, tagged with the author's name and avatar."""
        profile_doc = self.users_ref.document(user_id).get()
        profile = profile_doc.to_dict() if profile_doc.exists else {}
        author_name = profile.get('name') or UNKNOWN_AUTHOR
        author_avatar = profile.get('avatar')

        query = self._posts_ref(user_id).order_by('created_at', direction=firestore.Query.DESCENDING)
        posts = []
        for doc in query.stream():
            data = DateTimeUtils.from_firestore(doc.to_dict())
            posts.append({
                "post_id": doc.id,
                "user_id": user_id,
                "user_name": author_name,
                "avatar": author_avatar,
                "title": data.get('title') or "",
                "content": data.get('content') or "",
                "photo_url": data.get('photo_url') or "",
                "likes": data.get('likes') if isinstance(data.get('likes'), list) else [],
                "created_at": DateTimeUtils.sort_key(data.get('created_at')),
                "comments": [],
            })
        return posts

    def _with_comments(self, post: Dict[str, Any]) -> Dict[str, Any]:
        comments_ref = self._posts_ref(post['user_id']).document(post['post_id']).collection('comments')
        comments = []
        for doc in comments_ref.stream():
            data = DateTimeUtils.from_firestore(doc.to_dict())
            comments.append({
                "comment_id": doc.id,
                "text": data.get('text', ""),
                "author": data.get('author') or "Anonymous",
                "author_id": data.get('author_id'),
                "created_at": DateTimeUtils.sort_key(data.get('created_at')),
            })
        comments.sort(key=lambda c: c['created_at'])
        post['comments'] = comments
        return post

    def _aggregate(self, author_ids: List[str]) -> List[Dict[str, Any]]:
        per_author = self._map(self._author_posts, author_ids)
        merged = [post for posts in per_author for post in posts]
        # Per-author order is not trusted after the merge.
        merged.sort(key=lambda p: p['created_at'], reverse=True)
        return self._map(self._with_comments, merged)

    def get_feed(self, user_id: str) -> List[Dict[str, Any]]:
        """Posts by the user and every current friend, newest first, with comments."""
        try:
            author_ids = self.friend_service.get_friend_ids(user_id)
            if user_id not in author_ids:
                author_ids.append(user_id)
            feed = self._aggregate(author_ids)
            logging.info(f"Feed built for {user_id}: {len(author_ids)} authors, {len(feed)} posts")
            return feed
        except Exception as e:
            logging.error(f"Feed aggregation failed (user_id: {user_id}): {e}", exc_info=True)
            raise

    def get_user_posts(self, user_id: str) -> List[Dict[str, Any]]:
        """A single author's posts with comments (profile pages)."""
        return self._aggregate([user_id])
