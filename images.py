"""
Uploads product / category images to an ImgBB compatible host.

The upload blocks the enclosing create request; any failure surfaces as
UpstreamServiceError and the record is not created.
"""

from typing import Optional

import httpx
import structlog

import config
from errors import UpstreamServiceError

log = structlog.get_logger(__name__)


def _strip_data_url(data: str) -> str:
    # "data:image/png;base64,AAAA" -> "AAAA"
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def upload_image(data: str, client: Optional[httpx.Client] = None) -> str:
    """Upload base64 image content and return its public URL."""
    if not config.IMGBB_API_KEY:
        raise UpstreamServiceError("Image upload is not configured (IMGBB_API_KEY missing)")

    form = {"key": config.IMGBB_API_KEY, "image": _strip_data_url(data.strip())}
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=config.IMAGE_UPLOAD_TIMEOUT)
    try:
        resp = client.post(config.IMAGE_HOST_URL, data=form)
        resp.raise_for_status()
        url = resp.json()["data"]["url"]
    except httpx.HTTPStatusError as e:
        log.warning("image_upload_failed", status=e.response.status_code)
        raise UpstreamServiceError(f"Image upload failed with status {e.response.status_code}") from e
    except httpx.HTTPError as e:
        log.warning("image_upload_failed", error=str(e))
        raise UpstreamServiceError(f"Image upload failed: {e}") from e
    except (KeyError, TypeError, ValueError) as e:
        log.warning("image_upload_bad_response", error=str(e))
        raise UpstreamServiceError("Image host returned an unexpected response") from e
    finally:
        if owns_client:
            client.close()

    log.info("image_uploaded", url=url)
    return url
