"""
Image storage service for uploaded product and showcase images
Local disk backend by default, DigitalOcean Spaces (S3 API) when configured
"""

import os
import io
import uuid
import logging
from datetime import datetime
from pathlib import Path
from typing import List, NamedTuple, Optional

import boto3
from botocore.exceptions import ClientError
from PIL import Image, UnidentifiedImageError

from cloche.utils.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "webp"}
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB for HD photos
MAX_IMAGES_PER_UPLOAD = 10


class ImageUpload(NamedTuple):
    data: bytes
    filename: str
    content_type: Optional[str] = None


class ImageStorage:
    def __init__(
        self,
        backend: Optional[str] = None,
        upload_dir: Optional[str] = None,
        public_prefix: str = "/uploads"
    ):
        """Initialize storage using environment variables"""
        self.backend = (backend or os.getenv("STORAGE_BACKEND", "local")).lower()
        self.upload_dir = Path(upload_dir or os.getenv("UPLOAD_DIR", "uploads"))
        self.public_prefix = public_prefix.rstrip("/")
        self.client = None

        if self.backend == "spaces":
            self.bucket_name = os.getenv("SPACES_BUCKET", "cloche-spaces")
            self.region = os.getenv("SPACES_REGION", "sfo3")
            self.endpoint = os.getenv("SPACES_ENDPOINT", f"https://{self.region}.digitaloceanspaces.com")
            self.public_endpoint = f"https://{self.bucket_name}.{self.region}.digitaloceanspaces.com"

            self.client = boto3.client(
                's3',
                region_name=self.region,
                endpoint_url=self.endpoint,
                aws_access_key_id=os.getenv("DO_SPACES_KEY"),
                aws_secret_access_key=os.getenv("DO_SPACES_SECRETKEY")
            )
        elif self.backend != "local":
            raise ValueError(f"Unknown STORAGE_BACKEND: {self.backend}")

    def validate_image(self, upload: ImageUpload):
        """Reject anything that is not a jpeg/png/webp image of at most 10MB"""
        extension = upload.filename.rsplit('.', 1)[-1].lower() if '.' in upload.filename else ''
        if extension not in ALLOWED_EXTENSIONS:
            raise ValidationError("High quality images only! (jpeg, jpg, png, webp)")
        if upload.content_type and not upload.content_type.startswith("image/"):
            raise ValidationError("File must be an image")
        if len(upload.data) > MAX_IMAGE_BYTES:
            raise ValidationError("Image exceeds the 10MB limit")

        try:
            image = Image.open(io.BytesIO(upload.data))
            image_format = image.format
            image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            raise ValidationError(f"Could not read image: {upload.filename}")

        if image_format not in ALLOWED_FORMATS:
            raise ValidationError("High quality images only! (jpeg, jpg, png, webp)")

    def validate_images(self, uploads: List[ImageUpload]):
        if len(uploads) > MAX_IMAGES_PER_UPLOAD:
            raise ValidationError(f"At most {MAX_IMAGES_PER_UPLOAD} images per upload")
        for upload in uploads:
            self.validate_image(upload)

    def save(self, upload: ImageUpload, folder: str = "", prefix: str = "") -> str:
        """
        Store an image and return its public URL

        Args:
            upload: Image bytes and original filename
            folder: Folder path (e.g., "products/12")
            prefix: Optional filename prefix (e.g., "showcase")

        Returns:
            Public URL of the stored file
        """
        self.validate_image(upload)
        filename = self.generate_unique_filename(upload.filename, prefix)
        key = f"{folder.strip('/')}/{filename}" if folder else filename

        if self.backend == "spaces":
            try:
                self.client.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=upload.data,
                    ContentType=upload.content_type or "image/jpeg",
                    ACL='public-read',
                    CacheControl='max-age=31536000'  # 1 year cache
                )
            except ClientError as e:
                logger.error(f"Failed to upload image to Spaces: key={key}: {e}")
                raise StorageError("Failed to upload image")
            return f"{self.public_endpoint}/{key}"

        path = self.upload_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_bytes(upload.data)
        except OSError as e:
            logger.error(f"Failed to write image: path={path}: {e}")
            raise StorageError("Failed to upload image")
        return f"{self.public_prefix}/{key}"

    def save_all(self, uploads: List[ImageUpload], folder: str = "", prefix: str = "") -> List[str]:
        """Save every upload; on failure the ones already stored are removed"""
        urls: List[str] = []
        try:
            for upload in uploads:
                urls.append(self.save(upload, folder=folder, prefix=prefix))
        except StorageError:
            for url in urls:
                self.delete(url)
            raise
        return urls

    def delete(self, url: str) -> bool:
        """
        Delete a stored image

        Args:
            url: Public URL returned by save()

        Returns:
            True if a file was removed
        """
        if not url:
            return False

        if self.backend == "spaces":
            if not url.startswith(f"{self.public_endpoint}/"):
                return False
            key = url[len(self.public_endpoint) + 1:]
            try:
                self.client.delete_object(Bucket=self.bucket_name, Key=key)
                return True
            except ClientError as e:
                logger.error(f"Error deleting image: {e}")
                return False

        if not url.startswith(f"{self.public_prefix}/"):
            return False
        root = self.upload_dir.resolve()
        path = (self.upload_dir / url[len(self.public_prefix) + 1:]).resolve()
        if root not in path.parents:
            logger.warning(f"Refusing to delete outside upload dir: {url}")
            return False
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            logger.warning(f"Image already gone: {path}")
            return False
        except OSError as e:
            logger.error(f"Failed to delete file: {path}: {e}")
            return False

    def generate_unique_filename(self, original_filename: str, prefix: str = "") -> str:
        """
        Generate a unique filename

        Args:
            original_filename: Original filename
            prefix: Optional prefix (e.g., "showcase")

        Returns:
            Unique filename
        """
        ext = original_filename.rsplit('.', 1)[-1].lower()
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        unique_id = str(uuid.uuid4())[:8]

        if prefix:
            return f"{prefix}_{timestamp}_{unique_id}.{ext}"
        return f"{timestamp}_{unique_id}.{ext}"


# Create singleton instance
image_storage = ImageStorage()


def get_image_storage() -> ImageStorage:
    """Dependency returning the configured image storage"""
    return image_storage
