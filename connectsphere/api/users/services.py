# connectsphere/api/users/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List

from firebase_admin import firestore

from connectsphere.api.friends.services import FriendService
from connectsphere.core.exceptions import NotFoundError
from connectsphere.models.user import User, COMPLETION_FIELDS
from connectsphere.services.storage_service import StorageService
from connectsphere.utils.datetime_utils import DateTimeUtils

EDITABLE_FIELDS = ('name', 'title', 'bio', 'location', 'avatar', 'cover_image', 'socials', 'skills')

class UserService:
    """
    Profile documents in the 'users' collection.
    A profile is created on the first authenticated session and never deleted.
    """
    def __init__(self, storage_service: Optional[StorageService] = None, db=None,
                 friend_service: Optional[FriendService] = None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.storage_service = storage_service
        self.friend_service = friend_service or FriendService(db=self.db)

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self.users_ref.document(user_id).get()
        if not doc.exists:
            return None
        return DateTimeUtils.from_firestore(doc.to_dict())

    def ensure_profile(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None,
                       avatar: Optional[str] = None) -> Dict[str, Any]:
        """Returns the profile, creating it with defaults when absent."""
        existing = self.get_profile(user_id)
        if existing is not None:
            return existing

        new_user = User(uid=user_id, name=name or "", email=email or "", avatar=avatar)
        user_data = DateTimeUtils.for_firestore(asdict(new_user))
        self.users_ref.document(user_id).set(user_data)
        logging.info(f"Profile created for {user_id}")
        return user_data

    def get_public_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Profile with live post/friend counts and the completion percentage."""
        profile = self.get_profile(user_id)
        if profile is None:
            return None

        user_ref = self.users_ref.document(user_id)
        stats = dict(profile.get('stats') or {})
        stats['posts'] = len(user_ref.collection('posts').get())
        stats['friends'] = len(self.friend_service.get_friend_ids(user_id))
        profile['stats'] = stats
        profile['uid'] = user_id
        profile['completion'] = self.completion(profile)
        return profile

    @staticmethod
    def completion(profile: Dict[str, Any]) -> int:
        filled = [f for f in COMPLETION_FIELDS if str(profile.get(f) or '').strip()]
        return int(len(filled) * 100 / len(COMPLETION_FIELDS))

    @staticmethod
    def normalize_skills(skills) -> List[str]:
        """Accepts a list or a comma-separated string; trims and drops blanks."""
        if isinstance(skills, str):
            skills = skills.split(',')
        return [s.strip() for s in (skills or []) if s and s.strip()]

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge-writes the editable profile fields."""
        update_data = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if 'skills' in update_data:
            update_data['skills'] = self.normalize_skills(update_data['skills'])
        for key in ('name', 'title', 'bio', 'location'):
            if isinstance(update_data.get(key), str):
                update_data[key] = update_data[key].strip()

        user_ref = self.users_ref.document(user_id)
        if not user_ref.get().exists:
            raise NotFoundError("User not found.")
        try:
            user_ref.set(update_data, merge=True)
        except Exception as e:
            logging.error(f"Profile update failed (user_id: {user_id}): {e}", exc_info=True)
            raise
        return self.get_public_profile(user_id)

    def update_profile_image(self, user_id: str, kind: str, file_path: str) -> Optional[Dict[str, Any]]:
        """
        Finalizes a signed-URL upload: makes the blob public and stores its
        URL as the avatar or cover image.
        """
        if kind not in ('avatar', 'cover_image'):
            raise ValueError(f"'{kind}' is not a profile image field.")
        if not file_path.startswith(f"{StorageService.UPLOAD_FOLDERS[kind]}/{user_id}/"):
            raise PermissionError("The file does not belong to this user.")

        public_url = self.storage_service.make_public_and_get_url(file_path)
        return self.update_profile(user_id, {kind: public_url})

    def list_suggestions(self, user_id: str) -> List[Dict[str, Any]]:
        """Every other user, for the friend suggestions page."""
        suggestions = []
        for doc in self.users_ref.stream():
            if doc.id == user_id:
                continue
            data = DateTimeUtils.from_firestore(doc.to_dict())
            data['uid'] = doc.id
            suggestions.append(data)
        return suggestions
