import logging
import time

import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
from django.conf import settings

logger = logging.getLogger(__name__)


class ImageStorageError(Exception):
    """Raised when signed upload parameters cannot be produced"""


class CloudinaryService:
    """
    Service for handling Cloudinary operations
    Generates signed upload parameters for direct client uploads of work order images
    """

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_STORAGE["CLOUD_NAME"],
            api_key=settings.CLOUDINARY_STORAGE["API_KEY"],
            api_secret=settings.CLOUDINARY_STORAGE["API_SECRET"],
            secure=True,
        )

    @property
    def default_folder(self) -> str:
        return settings.CLOUDINARY_STORAGE.get("FOLDER", "confined-space-images")

    def upload_prefix(self, order_id: str, folder: str = None) -> str:
        """Every public_id issued for `order_id` starts with this"""
        return f"{folder or self.default_folder}/{order_id}/"

    def generate_upload_params(self, order_id: str, folder: str = None) -> dict:
        """
        Generate signed upload parameters for direct upload to Cloudinary

        Args:
            order_id: work order id the image belongs to
            folder: Cloudinary folder path, defaults to the configured folder

        Returns:
            dict with upload URL, signature, and parameters

        Raises:
            ImageStorageError: if the request cannot be signed
        """
        folder = folder or self.default_folder
        timestamp = int(time.time())
        public_id = f"{order_id}/image_{timestamp}"

        params_to_sign = {
            "folder": folder,
            "public_id": public_id,
            "timestamp": timestamp,
        }

        try:
            signature = cloudinary.utils.api_sign_request(
                params_to_sign,
                settings.CLOUDINARY_STORAGE["API_SECRET"],
            )
        except Exception as e:
            logger.error(f"Failed to sign Cloudinary upload for order {order_id}: {str(e)}")
            raise ImageStorageError(f"Cloudinary upload params generation failed: {str(e)}") from e

        cloud_name = settings.CLOUDINARY_STORAGE["CLOUD_NAME"]
        full_public_id = f"{self.upload_prefix(order_id, folder)}image_{timestamp}"

        logger.info(f"Generated Cloudinary upload params for order {order_id}")

        return {
            "upload_url": f"https://api.cloudinary.com/v1_1/{cloud_name}/image/upload",
            "upload_params": {
                "api_key": settings.CLOUDINARY_STORAGE["API_KEY"],
                "timestamp": timestamp,
                "signature": signature,
                "folder": folder,
                "public_id": public_id,
            },
            "public_id": full_public_id,
            "url": f"https://res.cloudinary.com/{cloud_name}/image/upload/{full_public_id}",
        }

    def get_image_url(self, public_id: str, transformation: dict = None) -> str:
        """
        Get image URL with optional transformation (width, height, crop, ...)
        """
        try:
            url, _ = cloudinary.utils.cloudinary_url(public_id, **(transformation or {}))
            return url
        except Exception as e:
            logger.error(f"Failed to generate Cloudinary URL for {public_id}: {str(e)}")
            return ""

    def get_thumbnail_url(self, public_id: str, width: int = 200) -> str:
        return self.get_image_url(
            public_id,
            transformation={
                "width": width,
                "crop": "fill",
                "quality": "auto",
                "fetch_format": "auto",
            },
        )

    def delete_image(self, public_id: str) -> bool:
        """
        Delete an image from Cloudinary

        Returns:
            bool indicating success
        """
        try:
            result = cloudinary.uploader.destroy(public_id)
        except Exception as e:
            logger.error(f"Failed to delete image {public_id}: {str(e)}")
            return False

        logger.info(f"Deleted image: {public_id}")
        return result.get("result") == "ok"

    def verify_upload(self, public_id: str):
        """
        Look up an uploaded image

        Returns:
            the Cloudinary resource dict, or None when the image does not exist
        """
        try:
            resource = cloudinary.api.resource(public_id)
        except cloudinary.exceptions.NotFound:
            logger.warning(f"Upload not found: {public_id}")
            return None
        except Exception as e:
            logger.error(f"Failed to verify upload {public_id}: {str(e)}")
            return None

        logger.info(f"Verified upload: {public_id}")
        return resource
