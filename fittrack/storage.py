import os
import time

import httpx
from flask import current_app, url_for
from werkzeug.utils import secure_filename

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "heic"}
PHOTO_SLOTS = (
    ("front", "front", "front_url"),
    ("back", "back", "back_url"),
    ("sideLeft", "side-left", "side_left_url"),
    ("sideRight", "side-right", "side_right_url"),
)


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _file_size(file) -> int:
    stream = file.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def build_object_path(user_id: int, filename: str, label: str) -> str:
    extension = filename.rsplit(".", 1)[1].lower() if "." in filename else "jpg"
    return f"{user_id}/{int(time.time() * 1000)}-{label}.{extension}"


def _upload_remote(object_path: str, data: bytes, content_type: str | None) -> str:
    base_url = current_app.config["STORAGE_URL"]
    bucket = current_app.config["PROGRESS_PHOTO_BUCKET"]
    response = httpx.post(
        f"{base_url}/storage/v1/object/{bucket}/{object_path}",
        content=data,
        headers={
            "Authorization": f"Bearer {current_app.config.get('STORAGE_SERVICE_KEY') or ''}",
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "true",
        },
        timeout=20.0,
    )
    response.raise_for_status()
    return f"{base_url}/storage/v1/object/public/{bucket}/{object_path}"


def _save_local(object_path: str, data: bytes) -> str:
    upload_dir = current_app.config["UPLOAD_FOLDER"]
    local_name = secure_filename(object_path.replace("/", "_"))
    os.makedirs(upload_dir, exist_ok=True)
    with open(os.path.join(upload_dir, local_name), "wb") as handle:
        handle.write(data)
    return url_for("static", filename=f"uploads/{local_name}")


def upload_photo(user_id: int, file, label: str) -> str | None:
    """Store one photo and return its public URL, or None when skipped/failed.

    A failed upload is logged and reported as None so the other photos of
    the same submission can still be saved.
    """
    if file is None or not file.filename or _file_size(file) == 0:
        return None
    if not allowed_file(file.filename):
        current_app.logger.warning("Skipping %s photo with unsupported type: %s", label, file.filename)
        return None

    object_path = build_object_path(user_id, file.filename, label)
    data = file.read()
    try:
        if current_app.config.get("STORAGE_URL"):
            return _upload_remote(object_path, data, file.mimetype)
        return _save_local(object_path, data)
    except (httpx.HTTPError, OSError):
        current_app.logger.exception("Upload failed for %s photo of user_id=%s", label, user_id)
        return None


def upload_progress_photos(user_id: int, files) -> dict[str, str | None]:
    urls = {}
    for form_key, label, column in PHOTO_SLOTS:
        urls[column] = upload_photo(user_id, files.get(form_key), label)
    return urls
