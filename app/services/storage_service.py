"""
Object storage for chat attachments (S3 through boto3).
"""
import time
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("storage")

def get_s3_client():
    """Get configured boto3 client for the attachment bucket"""
    return boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
        config=Config(signature_version="s3v4"),
    )

def document_key(filename: str) -> str:
    safe_name = (filename or "file").replace("/", "_").replace(" ", "_")
    return f"chat/{int(time.time() * 1000)}-{safe_name}"

class StorageService:
    def __init__(self, client=None, bucket: str = settings.BUCKET_NAME):
        self._client = client
        self.bucket = bucket

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    async def upload(self, key: str, body: bytes, content_type: Optional[str]) -> str:
        try:
            await run_in_threadpool(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error(f"Upload of {key} failed: {exc}")
            raise HTTPException(status_code=502, detail="Could not store the document") from exc
        return key

    async def signed_url(self, key: str, expires_in: int = settings.DOCUMENT_URL_EXPIRY_SECONDS) -> str:
        try:
            return await run_in_threadpool(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error(f"Signing URL for {key} failed: {exc}")
            raise HTTPException(status_code=502, detail="Could not create a link for the document") from exc

    async def store_document(self, filename: str, body: bytes, content_type: Optional[str]) -> str:
        """Uploads and returns a time-limited retrieval URL."""
        if not body:
            raise HTTPException(status_code=400, detail="Please provide the document to upload.")
        if len(body) > settings.MAX_DOCUMENT_SIZE_BYTES:
            raise HTTPException(status_code=400, detail="Document exceeds the maximum allowed size")
        key = await self.upload(document_key(filename), body, content_type)
        return await self.signed_url(key)

def get_storage_service() -> StorageService:
    return StorageService()
