import logging
import os

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)

# CLOUDINARY_URL is picked up by the SDK itself; the split variables are the fallback
if not os.getenv("CLOUDINARY_URL"):
    cloudinary.config(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        api_key=os.getenv("CLOUDINARY_API_KEY"),
        api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        secure=True,
    )


def upload(image: str) -> str:
    """Send an image (data URI or URL) to Cloudinary and return its hosted URL."""
    try:
        result = cloudinary.uploader.upload(image, folder=config.UPLOAD_FOLDER)
    except (CloudinaryError, OSError, ValueError) as e:
        logger.error("Cloudinary upload failed: %s", e)
        raise UpstreamError("Upload failed") from e
    url = result.get("secure_url")
    if not url:
        logger.error("Cloudinary upload returned no url: %s", result)
        raise UpstreamError("Upload failed")
    return url


def get_uploader():
    return upload
