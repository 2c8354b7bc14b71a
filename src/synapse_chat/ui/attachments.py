"""Image attachments for outgoing messages.

Hides how a local image file becomes an embeddable payload (a base64
data URL, the format the completion endpoint accepts in image parts).
"""

import base64
import mimetypes
from pathlib import Path

MAX_IMAGE_BYTES = 20 * 1024 * 1024


def encode_image_file(path: str | Path) -> str:
    """Read an image file and return it as a ``data:`` URL.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ValueError: If the file is not an image or is too large
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise FileNotFoundError(f"No such file: {file_path}")

    mime_type, _ = mimetypes.guess_type(file_path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {file_path.name}")

    data = file_path.read_bytes()
    if len(data) > MAX_IMAGE_BYTES:
        raise ValueError(f"Image too large: {len(data)} bytes")

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
