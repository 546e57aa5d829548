"""Shard paths for the published ``pool/`` tree.

Packages are grouped by the first letter of their name, except ``lib*``
packages which get ``lib`` + the next letter (``libm/``, ``libp/`` ...) so
that ``l/`` does not become the largest directory of the archive.  The rule
must stay byte-for-byte compatible with existing published trees.
"""

from __future__ import annotations

import posixpath

_LIB_PREFIX = "lib"


def shard_prefix(name: str) -> str:
    """Return the shard directory for a package name."""
    if not name:
        raise ValueError("cannot shard an empty package name")
    if name.startswith(_LIB_PREFIX):
        return name[: len(_LIB_PREFIX) + 1]
    return name[0]


def package_name_from_filename(filename: str) -> str:
    """Package name of a Debian-style basename (``name_version[_arch].ext``)."""
    basename = posixpath.basename(filename)
    name = basename.split("_", 1)[0]
    if not name:
        raise ValueError(f"cannot derive package name from {filename!r}")
    return name


def pool_directory(package_name: str) -> str:
    """``<shard>/<package_name>``, e.g. ``libm/libmars-invaders``."""
    return posixpath.join(shard_prefix(package_name), package_name)


def published_pool_directory(prefix: str, component: str, filename: str) -> str:
    """Directory a package file is published under, relative to the public root."""
    if not component:
        raise ValueError("component must not be empty")
    directory = posixpath.join("pool", component, pool_directory(package_name_from_filename(filename)))
    if prefix and prefix not in (".", "/"):
        directory = posixpath.join(prefix.strip("/"), directory)
    return directory


def published_pool_path(prefix: str, component: str, filename: str) -> str:
    """Full relative path of a published package file."""
    return posixpath.join(
        published_pool_directory(prefix, component, filename), posixpath.basename(filename)
    )
