"""Cloudinary blob store adapter.

Uploads and deletes images through Cloudinary's signed REST upload API.
"""

import hashlib
import logging
import time
from typing import Any

import httpx

from offer_catalog_service.adapters.base_blob_store import BlobStore
from offer_catalog_service.models.offer_models import ImageUpload, InfoImage
from offer_catalog_service.observability.metrics import record_blob_store_call

logger = logging.getLogger(__name__)


class CloudinaryBlobStore(BlobStore):
    """Blob store backed by the Cloudinary image upload API.

    Requests are authenticated with an API key and a SHA-1 signature over the
    sorted request parameters and the API secret.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize Cloudinary adapter.

        Args:
            cloud_name: Cloudinary cloud name
            api_key: Cloudinary API key
            api_secret: Cloudinary API secret used for request signatures
            base_url: API base URL
            timeout_seconds: Timeout for each API request
        """
        super().__init__("cloudinary")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = f"{base_url.rstrip('/')}/{cloud_name}/image"
        self.timeout_seconds = timeout_seconds

    def sign(self, params: dict[str, Any]) -> str:
        """Compute the request signature for the given parameters.

        Args:
            params: Parameters to sign, excluding file, api_key and signature

        Returns:
            str: Hex SHA-1 signature
        """
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode()).hexdigest()

    def _signed_params(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {**params, "signature": self.sign(params), "api_key": self.api_key}

    async def upload_image(self, image: ImageUpload, external_id: str | None = None) -> InfoImage | None:
        """Upload an image, overwriting ``external_id`` when given.

        Args:
            image: Image content and metadata
            external_id: Existing public id to overwrite

        Returns:
            InfoImage: Public id and secure URL, or None if the upload failed
        """
        params: dict[str, Any] = {}
        if external_id:
            params["public_id"] = external_id
            params["overwrite"] = "true"

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/upload",
                    data=self._signed_params(params),
                    files={"file": (image.filename, image.data, image.content_type)},
                )

            if response.status_code != 200:
                logger.error(f"Cloudinary upload failed: {response.status_code} {response.text}")
                return None

            body = response.json()
            return InfoImage(external_id=body["public_id"], image_url=body["secure_url"])

        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Cloudinary upload_image failed: {e}")
            return None
        finally:
            record_blob_store_call("upload", time.monotonic() - started)

    async def delete_image(self, external_id: str) -> bool:
        """Delete an image by public id.

        Args:
            external_id: Cloudinary public id

        Returns:
            bool: True if Cloudinary reported the image destroyed
        """
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/destroy",
                    data=self._signed_params({"public_id": external_id}),
                )

            if response.status_code != 200:
                logger.error(f"Cloudinary destroy failed: {response.status_code}")
                return False

            result = response.json().get("result")
            if result != "ok":
                logger.error(f"Cloudinary destroy of {external_id} returned {result}")
                return False

            logger.info(f"Deleted image {external_id} from Cloudinary")
            return True

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Cloudinary delete_image failed: {e}")
            return False
        finally:
            record_blob_store_call("destroy", time.monotonic() - started)
