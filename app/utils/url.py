from urllib.parse import parse_qs, quote, urlencode, urlsplit

SHORT_HOST = "youtu.be"
RELAY_PATH = "/api/stream"


def normalize_reference(raw_url: str) -> str:
    """
    Rewrite a watch-page URL into ``https://youtu.be/<id>[?t=<ts>]``.
    Anything without a ``v`` query parameter, or that does not parse as an
    absolute URL, comes back unchanged.
    """
    try:
        parsed = urlsplit(raw_url)
        if not parsed.scheme or not parsed.netloc:
            return raw_url
        query = parse_qs(parsed.query)
    except (ValueError, TypeError, AttributeError):
        return raw_url

    video_id = query.get("v", [None])[0]
    if not video_id:
        return raw_url

    clean_url = f"https://{SHORT_HOST}/{video_id}"
    timestamp = query.get("t", [None])[0]
    if timestamp:
        clean_url += f"?t={timestamp}"
    return clean_url


def encode_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent"""
    return quote(value, safe="-_.!~*'()")


def build_relay_ticket(direct_url: str, title: str) -> str:
    """Same-origin relay path carrying the upstream URL and display title"""
    query = urlencode(
        {"videoUrl": direct_url, "title": title},
        quote_via=lambda value, *_: encode_component(value),
    )
    return f"{RELAY_PATH}?{query}"
