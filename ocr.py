# ocr.py
"""
Image → math transcription.

`StubOCR` is a placeholder that returns a fixed expression for any valid image;
`MathpixOCR` calls the Mathpix v3/text endpoint. `get_ocr()` picks Mathpix
whenever credentials are configured.
"""
import base64
import binascii
import logging
import mimetypes
from typing import Optional, Tuple

import requests

import config
from errors import InvalidInputError, OCRTimeoutError, ProviderError
from schemas import OCRResult

logger = logging.getLogger(__name__)

PLACEHOLDER_LATEX = "\\frac{1}{2}x + 3 = 5"


# ---------------- Data-URI helpers ----------------
def pick_mime(filename: str, content_type_hint: Optional[str]) -> str:
    return content_type_hint or mimetypes.guess_type(filename)[0] or "application/octet-stream"


def to_data_uri(content: bytes, mime: str) -> str:
    if not content:
        raise InvalidInputError("Empty image upload.")
    b64 = base64.b64encode(content).decode("ascii")
    return f"data:{mime};base64,{b64}"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Split `data:<mime>;base64,<payload>` into (mime, decoded bytes).
    Raises InvalidInputError for anything else.
    """
    if not uri or not uri.startswith("data:") or "," not in uri:
        raise InvalidInputError("Image must be a data URI: data:<mimetype>;base64,<data>")
    header, payload = uri.split(",", 1)
    params = header[len("data:"):].split(";")
    mime = params[0].strip()
    if "/" not in mime:
        raise InvalidInputError(f"Image data URI has no MIME type: {header!r}")
    if "base64" not in params[1:]:
        raise InvalidInputError("Image data URI must use base64 encoding.")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Invalid base64 data: {e}")
    if not data:
        raise InvalidInputError("Image data URI has an empty payload.")
    return mime, data


# ---------------- Adapters ----------------
class OCRAdapter:
    def extract(self, image: str) -> OCRResult:
        raise NotImplementedError


class StubOCR(OCRAdapter):
    """Returns PLACEHOLDER_LATEX for every well-formed image. No network call."""

    def extract(self, image: str) -> OCRResult:
        mime, data = parse_data_uri(image)
        logger.warning("Stub OCR in use (%s, %d bytes); returning placeholder expression", mime, len(data))
        return OCRResult(latex=PLACEHOLDER_LATEX)


class MathpixOCR(OCRAdapter):
    def __init__(
        self,
        app_id: str = config.MATHPIX_APP_ID,
        app_key: str = config.MATHPIX_APP_KEY,
        url: str = config.MATHPIX_URL,
        timeout: float = config.OCR_TIMEOUT,
    ):
        self.app_id = app_id
        self.app_key = app_key
        self.url = url
        self.timeout = timeout

    def extract(self, image: str) -> OCRResult:
        mime, data = parse_data_uri(image)
        headers = {"app_id": self.app_id, "app_key": self.app_key, "Content-type": "application/json"}
        payload = {
            "src": image,
            "formats": ["text", "latex_styled"],
            "rm_spaces": True,
        }
        logger.info("Mathpix request: %s, %d bytes", mime, len(data))
        try:
            r = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise OCRTimeoutError(f"Mathpix timed out after {self.timeout}s: {e}")
        except requests.RequestException as e:
            raise ProviderError(f"Mathpix request failed: {e}")

        if r.status_code != 200:
            raise ProviderError(f"Mathpix returned HTTP {r.status_code}: {r.text[:200]}")
        try:
            j = r.json()
        except ValueError as e:
            raise ProviderError(f"Mathpix returned invalid JSON: {e}")
        if not isinstance(j, dict):
            raise ProviderError(f"Mathpix returned unexpected JSON: {str(j)[:200]}")
        if j.get("error"):
            raise ProviderError(f"Mathpix error: {j['error']}")

        latex = (j.get("latex_styled") or j.get("text") or "").strip()
        return OCRResult(latex=latex)


def get_ocr() -> OCRAdapter:
    if config.mathpix_enabled():
        return MathpixOCR()
    return StubOCR()
