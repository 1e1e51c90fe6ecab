"""
Image reference parsing for the image relay.

Turns a raw image string from a request into the identifiers used to pull,
tag, push and clean up the image.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ErrorKind, RelayError

logger = logging.getLogger(__name__)

DEFAULT_TAG = "latest"


def flatten(raw: str) -> str:
    """
    Make a digest reference safe for use as a tag.

    Example:
        >>> flatten("library/alpine@sha256:abcd")
        'library_alpine_sha256_abcd'
    """
    return raw.replace("/", "_").replace("@", "_").replace(":", "_")


@dataclass(frozen=True)
class ImageReference:
    """
    A parsed image reference.

    Exactly one of ``tag`` and ``digest`` is set.

    Attributes:
        raw: The string as received
        repository: Repository part (everything before ``:tag`` or ``@digest``)
        tag: Tag, ``latest`` when the raw string carries neither tag nor digest
        digest: Content digest such as ``sha256:...``
        joined: Canonical source identifier, removed locally after the push
        destination_tag: Tag the image receives in the destination repository
    """

    raw: str
    repository: str
    tag: Optional[str]
    digest: Optional[str]
    joined: str
    destination_tag: str

    @property
    def pull_ref(self) -> str:
        """Identifier to pull and to tag from."""
        return self.raw if self.digest else self.joined


def parse_image_reference(raw: Optional[str]) -> ImageReference:
    """
    Parse a raw image string.

    Args:
        raw: Image string from the request, e.g. "alpine:3.18", "alpine" or
            "library/alpine@sha256:...". None when the request had no image.

    Returns:
        The parsed ImageReference

    Raises:
        RelayError: MALFORMED_REFERENCE if the string is missing, empty, or has
            more than two colon-separated segments

    Rules:
        - A string containing "@" is a digest reference and is not split on ":"
          (the digest itself contains one)
        - Otherwise the string splits on ":" into repository and tag
        - A bare repository gets the implicit "latest" tag
        - The destination tag joins the segments with "_" instead of ":"
        - Digest references are flattened ("/", "@", ":" become "_") and the
          flattened token is used as both the source and destination name

    Examples:
        >>> parse_image_reference("alpine:3.18").destination_tag
        'alpine_3.18'
        >>> parse_image_reference("alpine").joined
        'alpine:latest'
        >>> parse_image_reference("a:b:c")  # Raises MALFORMED_REFERENCE
    """
    if not raw:
        logger.warning("Image reference missing from request")
        raise RelayError(ErrorKind.MALFORMED_REFERENCE, "Image is null")

    if "@" in raw:
        repository, _, digest = raw.partition("@")
        joined = flatten(raw)
        logger.debug(f"Digest reference parsed: {raw} -> {joined}")
        return ImageReference(
            raw=raw,
            repository=repository,
            tag=None,
            digest=digest,
            joined=joined,
            destination_tag=joined,
        )

    parts = raw.split(":")
    if len(parts) > 2:
        logger.warning(f"Invalid image reference, too many ':' segments: {raw}")
        raise RelayError(
            ErrorKind.MALFORMED_REFERENCE,
            f"Invalid image reference '{raw}': expected <repository>[:<tag>] or <repository>@<digest>",
        )
    if len(parts) == 1:
        parts.append(DEFAULT_TAG)

    repository, tag = parts
    reference = ImageReference(
        raw=raw,
        repository=repository,
        tag=tag,
        digest=None,
        joined=":".join(parts),
        destination_tag="_".join(parts),
    )
    logger.debug(f"Image reference parsed: {raw} -> {reference.joined}")
    return reference
