"""
HTTP-triggered container image relay.

Pulls an image from its origin registry, re-tags it under a fixed destination
repository, pushes it there with the configured credentials and removes the
local copies.

Reference Formats:
    1. Tagged: <repository>[:<tag>]
       Destination tag: <repository>_<tag> ("latest" when no tag is given)
       Example: alpine:3.18 -> alpine_3.18

    2. Digest: <repository>@<algorithm>:<hex>
       Destination tag: the reference with "/", "@" and ":" replaced by "_"
       Example: library/alpine@sha256:abcd -> library_alpine_sha256_abcd
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config, ConfigError
from .errors import ErrorKind, RelayError
from .reference import ImageReference, parse_image_reference
from .engine import DockerEngine, EngineError
from .sync import ImageSyncer, InFlightTags, SyncRequest, SyncResult, prune_images

__all__ = [
    "Config",
    "ConfigError",
    "ErrorKind",
    "RelayError",
    "ImageReference",
    "parse_image_reference",
    "DockerEngine",
    "EngineError",
    "ImageSyncer",
    "InFlightTags",
    "SyncRequest",
    "SyncResult",
    "prune_images",
]
