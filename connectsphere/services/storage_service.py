# connectsphere/services/storage_service.py
import uuid
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import unquote
from flask import Flask
from firebase_admin import storage

from connectsphere.utils.datetime_utils import DateTimeUtils

class StorageService:
    """
    Firebase Storage access shared by every domain.
    Uploads post images directly and issues signed URLs for profile images.
    """

    # Folder per signed-URL upload type.
    UPLOAD_FOLDERS = {
        "avatar": "avatars",
        "cover_image": "covers",
    }

    def __init__(self, bucket=None):
        """
        The bucket can be injected; otherwise it is resolved in init_app.
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Resolves the Storage bucket from the app config.
        Called once from create_app.
        """
        if self.bucket is not None:
            return
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET must be set in .env or the config class.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage bucket initialized.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService is not initialized. Call init_app first.")

    def upload_post_image(self, user_id: str, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Uploads a post image to posts/{uid}/{epoch_millis}-{filename} and
        returns its public download URL.
        """
        self._require_bucket()
        safe_name = filename.replace('/', '_') if filename else 'image'
        millis = DateTimeUtils.to_timestamp_ms(DateTimeUtils.now())
        blob = self.bucket.blob(f"posts/{user_id}/{millis}-{safe_name}")
        blob.upload_from_string(data, content_type=content_type)
        blob.make_public()
        logging.info(f"Post image uploaded: {blob.name}")
        return blob.public_url

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        Issues a pre-signed PUT URL so the client uploads straight to Storage.

        :param upload_type: one of UPLOAD_FOLDERS ("avatar", "cover_image")
        :return: the upload URL and the object path to hand back on finalize
        """
        self._require_bucket()

        folder = self.UPLOAD_FOLDERS.get(upload_type)
        if not folder:
            raise ValueError(f"'{upload_type}' is not a valid upload type.")

        extension = filename.split('.')[-1] if '.' in filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{folder}/{user_id}/{unique_filename}"

        blob = self.bucket.blob(destination_blob_name)

        # Upload-only URL valid for 15 minutes.
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    def make_public_and_get_url(self, file_path: str) -> str:
        """
        Makes an uploaded object public and returns its URL.
        """
        self._require_bucket()

        blob = self.bucket.blob(file_path)
        if not blob.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            blob.make_public()
            return blob.public_url
        except Exception as e:
            logging.error(f"Failed to make file public: {e}", exc_info=True)
            raise

    def delete_by_url(self, url: str) -> bool:
        """
        Deletes the object behind a public URL. Best-effort: failures are
        logged and reported as False.
        """
        if not url or not self.bucket:
            return False
        prefix = f"/{self.bucket.name}/"
        path = url.split("?")[0]
        if prefix not in path:
            return False
        file_path = unquote(path.split(prefix, 1)[1])
        try:
            blob = self.bucket.blob(file_path)
            if blob.exists():
                blob.delete()
                return True
        except Exception as e:
            logging.error(f"Storage delete failed (url: {url}): {e}")
        return False
