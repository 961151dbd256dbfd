"""Turn display strings into XML element names and file names."""

import re

_WHITESPACE = re.compile(r"\s+")
_INVALID_TAG_CHARS = re.compile(r"[^A-Za-z0-9_]")


def sanitize(label: str) -> str:
    """Return a valid XML element name for any input string."""
    tag = _WHITESPACE.sub("_", str(label))
    tag = _INVALID_TAG_CHARS.sub("_", tag)
    if not tag or not tag[0].isalpha():
        tag = "_" + tag
    return tag


def sanitize_filename(name: str) -> str:
    """Location and image names as they appear in output file names."""
    cleaned = (
        str(name)
        .replace("/", "-")
        .replace("\\", "-")
        .replace(",", "-")
        .replace(".", "")
    )
    return _WHITESPACE.sub("_", cleaned.strip())
