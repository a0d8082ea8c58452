import os, uuid
from pathlib import Path
from typing import Tuple

from offerdesk.core.errors import StorageError, ValidationError

ALLOWED_EXT = {".txt"}
ASSETS_URL_PREFIX = "/assets"


def _safe_filename(name: str) -> str:
    keep = "".join(c for c in (name or "") if c.isalnum() or c in (" ", ".", "_", "-", "(", ")"))
    return keep.strip() or str(uuid.uuid4())


def check_upload_name(original_name: str) -> str:
    """Return the sanitized name or raise if the extension is not accepted."""
    if not original_name or Path(original_name).suffix.lower() not in ALLOWED_EXT:
        raise ValidationError("Only .txt files are supported")
    return _safe_filename(original_name)


def asset_url(stored_name: str) -> str:
    return f"{ASSETS_URL_PREFIX}/{stored_name}"


def store_text_upload(assets_dir: str, data: bytes) -> Tuple[str, str]:
    """
    Write an uploaded text file under assets_dir with a fresh uuid name.
    Returns: (stored_name, url)
    """
    stored_name = f"{uuid.uuid4()}.txt"
    try:
        os.makedirs(assets_dir, exist_ok=True)
        with open(os.path.join(assets_dir, stored_name), "wb") as f:
            f.write(data)
    except OSError as exc:
        raise StorageError(f"could not store upload: {exc}") from exc
    return stored_name, asset_url(stored_name)
