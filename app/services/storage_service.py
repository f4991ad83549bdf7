"""Storage service — note attachments in Supabase Storage (prod) or local disk (dev).

Supabase bucket: note-attachments (must be created in the Supabase dashboard).
Local fallback: instance/uploads/ directory, used when SUPABASE_URL or
SUPABASE_SERVICE_KEY is not configured.

Object paths: <user_id>/<note_id|temp>/<millis>-<sanitized filename>
Only the MIME types in ALLOWED_TYPES are accepted.
"""

import logging
import os
import re
import time

import requests
from flask import current_app

logger = logging.getLogger(__name__)

# Allowed MIME types
ALLOWED_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/ogg",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class StorageError(Exception):
    """Raised when the object store rejects or fails an operation."""


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_STORAGE_BUCKET", "note-attachments")

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def _timeout():
    return current_app.config.get("PROVIDER_TIMEOUT_SECONDS", 10)


def bucket_name():
    return current_app.config.get("SUPABASE_STORAGE_BUCKET", "note-attachments")


def validate_file(file):
    """Validate an uploaded file (from request.files).

    Returns (ok: bool, error: str|None).
    """
    if not file or not file.filename:
        return False, "No file selected."

    # Check content type
    if file.mimetype not in ALLOWED_TYPES:
        return False, f"File type '{file.mimetype or 'unknown'}' is not supported."

    max_size = current_app.config["MAX_ATTACHMENT_SIZE"]

    # Check file size (read + seek back)
    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)

    if size > max_size:
        return False, (
            f"File is too large ({size / (1024*1024):.1f} MB). "
            f"Maximum is {max_size // (1024*1024)} MB."
        )

    if size == 0:
        return False, "File is empty."

    return True, None


def build_storage_path(user_id, note_id, filename):
    """Build a collision-free object path for an upload."""
    safe_name = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    folder = str(note_id) if note_id is not None else "temp"
    return f"{user_id}/{folder}/{int(time.time() * 1000)}-{safe_name}"


def upload_file(file, user_id, note_id=None):
    """Upload a file and return metadata dict.

    Args:
        file: Werkzeug FileStorage from request.files
        user_id: Firebase uid of the owner
        note_id: The note this attachment belongs to, or None

    Returns dict with:
        file_name: original filename
        storage_path: path in bucket or on disk
        storage_bucket: bucket name
        file_type: MIME type
        file_size: bytes
        public_url: URL to access the file

    Raises StorageError if Supabase rejects the upload.
    """
    original_name = file.filename
    storage_path = build_storage_path(user_id, note_id, original_name)

    file_data = file.read()
    file_size = len(file_data)
    content_type = file.mimetype or "application/octet-stream"

    supabase = _get_supabase_config()
    if supabase:
        public_url = _upload_supabase(supabase, storage_path, file_data, content_type)
    else:
        public_url = _upload_local(storage_path, file_data)

    return {
        "file_name": original_name,
        "storage_path": storage_path,
        "storage_bucket": bucket_name(),
        "file_type": content_type,
        "file_size": file_size,
        "public_url": public_url,
    }


def _upload_supabase(config, path, data, content_type):
    """Upload to Supabase Storage. Returns public URL."""
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{path}"

    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
        "x-upsert": "false",
    }

    try:
        resp = requests.post(url, headers=headers, data=data, timeout=_timeout())
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Supabase upload failed for {path}: {e}")
        raise StorageError("Upload to storage failed") from e

    logger.info(f"Uploaded to Supabase: {path}")
    return f"{config['url']}/storage/v1/object/public/{config['bucket']}/{path}"


def _local_path(path):
    return os.path.join(current_app.instance_path, "uploads", path)


def _upload_local(path, data):
    """Upload to local filesystem (dev fallback). Returns URL path."""
    filepath = _local_path(path)
    os.makedirs(os.path.dirname(filepath), exist_ok=True)

    with open(filepath, "wb") as f:
        f.write(data)

    logger.info(f"Uploaded locally: {filepath}")
    return f"/uploads/{path}"


def download_file(storage_path):
    """Return the raw bytes of a stored file.

    Raises StorageError if the object cannot be fetched.
    """
    supabase = _get_supabase_config()
    if supabase:
        url = f"{supabase['url']}/storage/v1/object/{supabase['bucket']}/{storage_path}"
        headers = {"Authorization": f"Bearer {supabase['key']}"}
        try:
            resp = requests.get(url, headers=headers, timeout=_timeout())
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Supabase download failed for {storage_path}: {e}")
            raise StorageError("Download from storage failed") from e
        return resp.content

    try:
        with open(_local_path(storage_path), "rb") as f:
            return f.read()
    except OSError as e:
        raise StorageError("File not found in local storage") from e


def delete_file(storage_path):
    """Delete a file from storage. Best-effort, does not raise."""
    supabase = _get_supabase_config()
    if supabase:
        try:
            url = f"{supabase['url']}/storage/v1/object/{supabase['bucket']}/{storage_path}"
            headers = {"Authorization": f"Bearer {supabase['key']}"}
            requests.delete(url, headers=headers, timeout=_timeout())
        except requests.RequestException as e:
            logger.warning(f"Failed to delete from Supabase: {e}")
    else:
        try:
            os.remove(_local_path(storage_path))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete local file: {e}")
