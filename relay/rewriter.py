"""HLS manifest rewriting.

References are found by extension on whitespace-delimited tokens, not by
parsing playlist tags. A reference is resolved against the manifest's own URL
and re-pointed through the relay:

    seg1.ts      -> https://<relay-host>/fetch/segment?url=<quoted absolute url>
    720p.m3u8    -> https://<relay-host>/fetch?url=<quoted absolute url>

URIs inside tag attribute lists (``URI="..."``) end in a quote and are left
alone.
"""
import re
from typing import Optional, Tuple
from urllib.parse import quote, urljoin

SEGMENT_EXTENSIONS = (".ts",)
MANIFEST_EXTENSIONS = (".m3u8",)

SEGMENT = "segment"
MANIFEST = "manifest"

TOKEN = re.compile(r"\S+")


def reference_kind(token: str) -> Optional[str]:
    """Classify a token as a segment or manifest reference by the extension of its path."""
    if token.startswith("#"):
        return None
    path = token.split("#", 1)[0].split("?", 1)[0].lower()
    if path.endswith(SEGMENT_EXTENSIONS):
        return SEGMENT
    if path.endswith(MANIFEST_EXTENSIONS):
        return MANIFEST
    return None


def relay_bases(scheme: str, host: str) -> Tuple[str, str]:
    """Return the (fetch, segment) prefixes that a quoted absolute URL is appended to."""
    return f"{scheme}://{host}/fetch?url=", f"{scheme}://{host}/fetch/segment?url="


def relay_url(base: str, absolute_url: str) -> str:
    return f"{base}{quote(absolute_url, safe='')}"


def rewrite(
    manifest_text: str,
    source_url: str,
    relay_base_fetch_url: str,
    relay_base_segment_url: str,
) -> str:
    def make_relay_url(match):
        token = match.group(0)
        kind = reference_kind(token)
        if kind is None:
            return token

        absolute_url = urljoin(source_url, token)
        if kind == SEGMENT:
            return relay_url(relay_base_segment_url, absolute_url)
        return relay_url(relay_base_fetch_url, absolute_url)

    # Whitespace between tokens is never touched, so line endings survive as-is
    return TOKEN.sub(make_relay_url, manifest_text)
