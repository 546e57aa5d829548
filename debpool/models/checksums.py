"""Checksum set model: size plus MD5/SHA1/SHA256 identifying file content."""

from __future__ import annotations

import string

from pydantic import BaseModel, ConfigDict, field_validator

from debpool.errors import InvalidChecksumError

DIGEST_NAMES: tuple[str, ...] = ("md5", "sha1", "sha256")

# Order in which digests are tried when deriving a pool address.
ADDRESS_DIGEST_ORDER: tuple[str, ...] = ("md5", "sha256", "sha1")

_HEX = frozenset(string.hexdigits.lower())


class ChecksumInfo(BaseModel):
    """Immutable checksum set.

    ``size == 0`` and empty digest strings mean "unknown", never "zero".
    Any subset of the digests may be populated.
    """

    model_config = ConfigDict(frozen=True)

    size: int = 0
    md5: str = ""
    sha1: str = ""
    sha256: str = ""

    @field_validator("size")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("size must not be negative")
        return value

    @field_validator("md5", "sha1", "sha256", mode="before")
    @classmethod
    def _normalise_digest(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, str):
            value = value.strip().lower()
            if not set(value) <= _HEX:
                raise ValueError(f"digest {value!r} is not a hex string")
        return value

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def digests(self) -> dict[str, str]:
        """Return only the populated digests, keyed by name."""
        return {name: getattr(self, name) for name in DIGEST_NAMES if getattr(self, name)}

    @property
    def is_empty(self) -> bool:
        return self.size == 0 and not self.digests()

    @property
    def is_complete(self) -> bool:
        """Size and every digest are known."""
        return self.size > 0 and len(self.digests()) == len(DIGEST_NAMES)

    @property
    def address_digest(self) -> str:
        """Digest used to place content in the package pool."""
        for name in ADDRESS_DIGEST_ORDER:
            value = getattr(self, name)
            if value:
                return value
        raise InvalidChecksumError("checksum set has no digest to derive a pool address from")

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def is_compatible(self, other: ChecksumInfo) -> bool:
        """True if nothing known on both sides disagrees."""
        if self.size and other.size and self.size != other.size:
            return False
        theirs = other.digests()
        return all(
            theirs[name] == value for name, value in self.digests().items() if name in theirs
        )

    def matches(self, other: ChecksumInfo) -> bool:
        """Equal content: compatible and backed by at least one shared digest."""
        shared = self.digests().keys() & other.digests().keys()
        return bool(shared) and self.is_compatible(other)

    def mismatches(self, actual: ChecksumInfo) -> list[str]:
        """Describe every known field of ``self`` that ``actual`` contradicts."""
        problems: list[str] = []
        if self.size and self.size != actual.size:
            problems.append(f"size: expected={self.size}, actual={actual.size}")
        for name, value in self.digests().items():
            if getattr(actual, name) != value:
                problems.append(f"{name}: expected={value}, actual={getattr(actual, name)}")
        return problems
