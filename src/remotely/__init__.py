"""remotely: remotely/__init__.py."""


__version__ = "0.3.0"


def strip_leading_slash(path) -> str:
    """Remove leading slashes so a path can be joined beneath another one"""
    return str(path).lstrip("/")
