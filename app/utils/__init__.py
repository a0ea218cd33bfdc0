from .filename import sanitize_filename
from .url import build_relay_ticket, normalize_reference

__all__ = ["build_relay_ticket", "normalize_reference", "sanitize_filename"]
