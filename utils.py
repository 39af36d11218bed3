# utils.py

import hmac
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHM = "sha256"


def compute_signature(request_body: bytes, secret: str) -> str:
    """
    Returns the X-Hub-Signature-256 header value for a body, i.e. "sha256=<hex>".
    """
    mac = hmac.new(secret.encode(), msg=request_body, digestmod=hashlib.sha256)
    return f"{SIGNATURE_ALGORITHM}={mac.hexdigest()}"


def verify_signature(request_body: bytes, secret: str, signature: Optional[str]) -> bool:
    if not signature:
        logger.warning("No signature provided.")
        return False

    parts = signature.split('=')
    if len(parts) != 2:
        logger.warning("Invalid signature format.")
        return False
    sha_name, digest = parts

    if sha_name != SIGNATURE_ALGORITHM:
        logger.warning(f"Unsupported signature type: {sha_name}")
        return False

    mac = hmac.new(secret.encode(), msg=request_body, digestmod=hashlib.sha256)
    # compare_digest only accepts ASCII str; compare bytes so any header value is safe.
    is_valid = hmac.compare_digest(mac.hexdigest().encode(), digest.encode("utf-8", errors="replace"))
    if is_valid:
        logger.debug("Webhook signature verified successfully.")
    else:
        logger.warning("Webhook signature verification failed.")
    return is_valid
