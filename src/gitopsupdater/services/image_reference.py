"""Container image reference helpers.

References follow the Docker ``[registry/]repository[:tag][@digest]``
grammar. Only the parts needed to re-point a manifest at a new image are
handled here: the registry host of a configured registry URL, the
repository name without its tag and the tag itself.
"""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from gitopsupdater.errors import ImageReferenceError

_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[0-9a-fA-F]{32,}$")
DEFAULT_TAG = "latest"


def _is_registry_component(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def split_reference(reference: str) -> Tuple[Optional[str], str, Optional[str], Optional[str]]:
    """Splits a reference into ``(registry, repository, tag, digest)``."""
    value = (reference or "").strip()
    if not value or value != reference:
        raise ImageReferenceError(f"Invalid image reference: {reference!r}")

    digest = None
    if "@" in value:
        value, digest = value.split("@", 1)
        if not _DIGEST.match(digest):
            raise ImageReferenceError(f"Invalid digest in image reference: {reference!r}")

    tag = None
    last_slash = value.rfind("/")
    last_colon = value.rfind(":")
    if last_colon > last_slash:
        value, tag = value[:last_colon], value[last_colon + 1 :]
        if not _TAG.match(tag):
            raise ImageReferenceError(f"Invalid tag in image reference: {reference!r}")

    components = value.split("/")
    registry = None
    if len(components) > 1 and _is_registry_component(components[0]):
        registry = components.pop(0)

    if not components or not all(_COMPONENT.match(part) for part in components):
        raise ImageReferenceError(f"Invalid repository name in image reference: {reference!r}")

    return registry, "/".join(components), tag, digest


def registry_host_from_url(registry_url: str) -> str:
    """Returns the host and path of a registry URL, e.g. ``reg.example.com/team``."""
    value = registry_url.strip()
    parsed = urlparse(value if "://" in value else f"//{value}")
    if not parsed.hostname or "@" in parsed.netloc:
        raise ImageReferenceError(f"registry URL could not be extracted from {registry_url!r}")

    path = parsed.path.strip("/")
    return f"{parsed.netloc}/{path}" if path else parsed.netloc


def _registry_prefix(registry_url: str) -> str:
    if not registry_url:
        return ""
    return registry_host_from_url(registry_url) + "/"


def build_registry_image(registry_url: str, image: str) -> str:
    if not registry_url:
        return image
    return _registry_prefix(registry_url) + image


def image_name_without_tag(reference: str) -> str:
    _, repository, _, _ = split_reference(reference)
    return repository


def tag_from_reference(reference: str) -> str:
    _, _, tag, digest = split_reference(reference)
    if tag is None and digest is not None:
        raise ImageReferenceError(
            f"Image reference {reference!r} is pinned by digest only; a tag is required"
        )
    return tag or DEFAULT_TAG


def build_registry_image_without_tag(registry_url: str, image: str) -> str:
    registry, repository, _, _ = split_reference(image)
    if registry_url:
        return _registry_prefix(registry_url) + repository
    if registry:
        return f"{registry}/{repository}"
    return repository
