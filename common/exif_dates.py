#!/usr/bin/env python3
"""
EXIF Capture Date Module

Reads and writes the capture date of an image through a file handle. Writing
always sets DateTimeOriginal, DateTime and DateTimeDigitized to the same
"YYYY:MM:DD HH:MM:SS" value.

Two strategies are tried in order:
    1. In place: open the handle read-write and rewrite its bytes.
    2. Shadow copy: copy the source to a private temp file, update it there,
       then stream the result back over the handle.

JPEG and WebP are edited with piexif. PNG has no APP1 segment, so its EXIF
block is stored in the eXIf chunk by re-saving the image through Pillow;
pixel data and palette survive unchanged.
"""

import io
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import piexif
from PIL import Image

from common.handles import FileHandle

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
DISPLAY_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NOT_SET = "Not set"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# (IFD, tag, name) for every date field written together
DATE_TAGS = (
    ("Exif", piexif.ExifIFD.DateTimeOriginal, "DateTimeOriginal"),
    ("0th", piexif.ImageIFD.DateTime, "DateTime"),
    ("Exif", piexif.ExifIFD.DateTimeDigitized, "DateTimeDigitized"),
)

# Additional fields reported by get_all_exif_data
INFO_TAGS = (
    ("0th", piexif.ImageIFD.Make, "Make"),
    ("0th", piexif.ImageIFD.Model, "Model"),
    ("0th", piexif.ImageIFD.ImageWidth, "ImageWidth"),
    ("0th", piexif.ImageIFD.ImageLength, "ImageLength"),
)


def format_exif_date(date: datetime) -> str:
    """Format a datetime as an EXIF date string.

    Built from numeric fields so the result never depends on locale.
    Seconds are truncated and timezone information is ignored.

    Example:
        >>> format_exif_date(datetime(2023, 7, 4, 9, 5, 3, 999999))
        '2023:07:04 09:05:03'
    """
    return (
        f"{date.year:04d}:{date.month:02d}:{date.day:02d} "
        f"{date.hour:02d}:{date.minute:02d}:{date.second:02d}"
    )


def parse_exif_date(value) -> Optional[datetime]:
    """Parse an EXIF date string (or bytes); None if malformed

    Example:
        >>> parse_exif_date(b"2023:07:04 09:05:03")
        datetime.datetime(2023, 7, 4, 9, 5, 3)
        >>> parse_exif_date("yesterday") is None
        True
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip("\x00 "), EXIF_DATE_FORMAT)
    except ValueError:
        return None


def _apply_date(exif_dict: Dict, date_string: str) -> None:
    encoded = date_string.encode("ascii")
    for ifd, tag, _name in DATE_TAGS:
        exif_dict.setdefault(ifd, {})[tag] = encoded


def _is_png(image_data: bytes) -> bool:
    return image_data.startswith(PNG_SIGNATURE)


def _read_png_exif(image_data: bytes) -> Dict:
    """EXIF dict stored in a PNG's eXIf chunk (empty IFDs if there is none)"""
    with Image.open(io.BytesIO(image_data)) as image:
        # eXIf may follow the image data, so load before reading info
        image.load()
        raw = image.info.get("exif")
    if not raw:
        return {"0th": {}, "Exif": {}}
    return piexif.load(raw)


def _rewrite_png_exif(image_data: bytes, date_string: str) -> bytes:
    exif_dict = _read_png_exif(image_data)
    _apply_date(exif_dict, date_string)
    output = io.BytesIO()
    with Image.open(io.BytesIO(image_data)) as image:
        image.save(output, format="PNG", exif=piexif.dump(exif_dict))
    return output.getvalue()


def _rewrite_exif(image_data: bytes, date_string: str) -> bytes:
    """Return image_data with the date fields replaced"""
    if _is_png(image_data):
        return _rewrite_png_exif(image_data, date_string)
    exif_dict = piexif.load(image_data)
    _apply_date(exif_dict, date_string)
    output = io.BytesIO()
    piexif.insert(piexif.dump(exif_dict), image_data, output)
    return output.getvalue()


def _update_in_place(handle: FileHandle, date_string: str) -> None:
    with handle.open_read_write() as stream:
        updated = _rewrite_exif(stream.read(), date_string)
        stream.seek(0)
        stream.write(updated)
        stream.truncate()


def _update_via_shadow_copy(
    handle: FileHandle, date_string: str, temp_dir: Optional[Path], keep_temp: bool
) -> bool:
    temp_file = tempfile.NamedTemporaryFile(
        prefix=f"exifdate_{os.getpid()}_",
        suffix=".tmp",
        dir=str(temp_dir) if temp_dir else None,
        delete=False,
    )
    temp_path = Path(temp_file.name)

    try:
        with temp_file:
            with handle.open_read() as source:
                shutil.copyfileobj(source, temp_file)

        updated = _rewrite_exif(temp_path.read_bytes(), date_string)
        temp_path.write_bytes(updated)

        try:
            output = handle.open_write()
        except OSError as e:
            logger.warning(f"No output channel for {handle.display_name}: {e}")
            return False

        with output, open(temp_path, "rb") as shadow:
            shutil.copyfileobj(shadow, output)
        return True
    finally:
        if keep_temp:
            logger.debug(f"Keeping shadow copy: {temp_path}")
        else:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass


def set_capture_date(
    handle: FileHandle,
    date: datetime,
    temp_dir: Optional[Path] = None,
    keep_temp: bool = False,
) -> bool:
    """
    Set the capture date of an image.

    Args:
        handle: Image to update
        date: Date to write (seconds truncated, timezone ignored)
        temp_dir: Directory for the shadow copy (system temp dir if None)
        keep_temp: Keep the shadow copy for debugging

    Returns:
        True if the date was written, False if every strategy failed
    """
    date_string = format_exif_date(date)

    try:
        _update_in_place(handle, date_string)
        logger.debug(f"Updated EXIF date in place: {handle.display_name} -> {date_string}")
        return True
    except Exception as e:
        logger.debug(f"In-place EXIF update failed for {handle.display_name}: {e}")

    try:
        if _update_via_shadow_copy(handle, date_string, temp_dir, keep_temp):
            logger.debug(f"Updated EXIF date via shadow copy: {handle.display_name}")
            return True
    except Exception as e:
        logger.error(f"Failed to write EXIF data to {handle.display_name}: {e}")
    return False


def _load_exif(handle: FileHandle) -> Optional[Dict]:
    try:
        with handle.open_read() as stream:
            image_data = stream.read()
        if _is_png(image_data):
            return _read_png_exif(image_data)
        return piexif.load(image_data)
    except Exception as e:
        logger.debug(f"Cannot read EXIF from {handle.display_name}: {e}")
        return None


def get_capture_date(handle: FileHandle) -> Optional[datetime]:
    """DateTimeOriginal of an image, or None if missing/malformed/unreadable"""
    exif_dict = _load_exif(handle)
    if exif_dict is None:
        return None
    return parse_exif_date(exif_dict.get("Exif", {}).get(piexif.ExifIFD.DateTimeOriginal))


def get_capture_date_formatted(handle: FileHandle) -> str:
    date = get_capture_date(handle)
    return date.strftime(DISPLAY_DATE_FORMAT) if date else NOT_SET


def has_capture_date(handle: FileHandle) -> bool:
    return get_capture_date(handle) is not None


def get_all_exif_data(handle: FileHandle) -> Dict[str, str]:
    """Date fields plus camera make/model and dimensions, as strings.

    Missing fields are omitted; unreadable images yield an empty dict.
    """
    exif_dict = _load_exif(handle)
    if exif_dict is None:
        return {}

    data = {}
    for ifd, tag, name in DATE_TAGS + INFO_TAGS:
        value = exif_dict.get(ifd, {}).get(tag)
        if value is None:
            continue
        if isinstance(value, bytes):
            value = value.decode("ascii", errors="replace").rstrip("\x00")
        data[name] = str(value)
    return data
