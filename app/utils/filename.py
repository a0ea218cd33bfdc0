import re

DEFAULT_TITLE = "video"
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9\-_.]")


def sanitize_filename(title: str, ext: str = "mp4") -> str:
    """Replace every character outside ``[A-Za-z0-9-_.]`` with ``_`` and add ``ext``"""
    return f"{UNSAFE_CHARS.sub('_', title or DEFAULT_TITLE)}.{ext}"
