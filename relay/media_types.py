from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

HLS_MIME_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_MIME_TYPE = "video/MP2T"

MANIFEST_TYPES = (
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
    "audio/mpegurl",
    "audio/x-mpegurl",
)


@dataclass(frozen=True)
class MediaAllowList:
    prefixes: Tuple[str, ...]

    @classmethod
    def of(cls, prefixes: Iterable[str]) -> "MediaAllowList":
        return cls(tuple(p.strip().lower() for p in prefixes if p and p.strip()))

    def allows(self, content_type: Optional[str]) -> bool:
        return allowed(content_type, self)


def allowed(content_type: Optional[str], allow_list: MediaAllowList) -> bool:
    """Prefix match against the allow-list. A missing type is never allowed."""
    if not content_type:
        return False
    content_type = content_type.strip().lower()
    return any(content_type.startswith(prefix) for prefix in allow_list.prefixes)


def is_manifest(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    content_type = content_type.lower()
    return any(t in content_type for t in MANIFEST_TYPES)
