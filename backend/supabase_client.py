"""
Supabase Storage as the media upload gateway for Love Nest.

Files go in as bytes and come back as a public URL plus the storage path,
which is kept as the image's ``publicId`` so it can be removed later.
"""
import uuid
from typing import Callable, List, Optional

from supabase import Client, create_client

import config

ALLOWED_PREFIXES = ("image/", "audio/")


class SupabaseClient:
    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get Supabase client instance (singleton pattern)"""
        if cls._instance is None:
            if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
            cls._instance = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
        return cls._instance


class MediaGateway:
    """Uploads and removes files in one storage bucket"""

    def __init__(self, client_factory: Callable[[], Client] = SupabaseClient.get_client, bucket: str = config.MEDIA_BUCKET):
        self._client_factory = client_factory
        self.bucket = bucket

    def _bucket(self):
        # Resolved per call so a missing configuration only fails the upload itself
        return self._client_factory().storage.from_(self.bucket)

    def upload(self, owner_id: str, filename: Optional[str], content: bytes, content_type: str) -> dict:
        extension = filename.rsplit('.', 1)[-1].lower() if filename and '.' in filename else 'bin'
        path = f"{owner_id}/{uuid.uuid4()}.{extension}"
        storage = self._bucket()
        storage.upload(path, content, {"content-type": content_type})
        return {"url": storage.get_public_url(path), "public_id": path}

    def remove(self, paths: List[str]):
        if not paths:
            return
        self._bucket().remove(paths)


def get_media_gateway() -> MediaGateway:
    """FastAPI dependency"""
    return MediaGateway()
