import base64
import mimetypes
from pathlib import Path
from typing import Optional, Union

from chatgateway.errors import InvalidMediaError
from chatgateway.schemas import Media

# image types accepted by the provider's vision input
SUPPORTED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def validate_media(media: Media) -> None:
    """
    Raise InvalidMediaError if the attachment can't be sent as is.
    Runs before any remote call.
    """
    mime = (media.mime_type or "").strip().lower()
    if mime not in SUPPORTED_MIME_TYPES:
        raise InvalidMediaError(f"Unsupported media type: {media.mime_type!r}")
    if not media.data:
        raise InvalidMediaError("Media attachment is empty")


def load_media(path: Union[str, Path], mime_type: Optional[str] = None) -> Media:
    """
    Read an attachment from disk.

    :param path: file to read
    :param mime_type: explicit MIME type, guessed from the extension when omitted
    :return: validated Media
    :rtype: Media
    """
    path = Path(path)
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(path.name)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InvalidMediaError(f"Cannot read media file {str(path)!r}: {e}") from e

    media = Media(data=data, mime_type=mime_type or "application/octet-stream")
    validate_media(media)
    return media


def to_data_url(media: Media) -> str:
    encoded = base64.b64encode(media.data).decode("ascii")
    return f"data:{media.mime_type.lower()};base64,{encoded}"
