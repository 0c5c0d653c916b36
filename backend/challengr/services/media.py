from __future__ import annotations
from PIL import Image
import io

from challengr.errors import UnsupportedMedia

IMAGE_MIME = {"image/jpeg", "image/png"}
VIDEO_MIME = {"video/mp4", "video/quicktime", "video/webm"}
EXT_FOR_MIME = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
}

def sniff_mime(data: bytes) -> str | None:
    # Trust the bytes, not the client's content-type
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format == "JPEG":
                return "image/jpeg"
            elif img.format == "PNG":
                return "image/png"
            return None
    except Exception:
        return None

def check_image(data: bytes) -> str:
    """Returns the detected mime of a proof image or raises UnsupportedMedia."""
    mime = sniff_mime(data)
    if mime not in IMAGE_MIME:
        raise UnsupportedMedia("Proof image must be a JPEG or PNG")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()  # basic integrity
    except Exception:
        raise UnsupportedMedia("Invalid image file")
    return mime

def check_video(content_type: str | None) -> str:
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct not in VIDEO_MIME:
        raise UnsupportedMedia("Proof video must be MP4, MOV or WebM")
    return ct

def ext_for_mime(mime: str) -> str:
    return EXT_FOR_MIME.get(mime, "bin")
