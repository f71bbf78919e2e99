"""Version parsing, constraint matching and the add-on replacement rule.

Three notions of identity meet here:

- the semantic version published in a catalog,
- an optional opaque variant id (switching variants always wins),
- the manifest content hash (same version, new content still triggers an update).

``replaces`` combines them; ``matches`` filters catalog records by the
cluster's Kubernetes version.
"""

import logging
import operator
import re
from dataclasses import dataclass
from typing import Callable

import semver

from steward.utils.errors import ConstraintParseError, VersionParseError

logger = logging.getLogger(__name__)

SHORT_VERSION_METADATA_MESSAGE = "Short version cannot contain PreRelease/Build meta data"

_CLAUSE_PATTERN = re.compile(r"^(>=|<=|==|!=|>|<|=|!)?(.+)$")

_OPERATORS: dict[str, Callable[[semver.Version, semver.Version], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
    "==": operator.eq,
    "!": operator.ne,
    "!=": operator.ne,
}


def _strip_leading_zeros(part: str) -> str:
    digits = len(part) - len(part.lstrip("0123456789"))
    if not digits:
        return part
    return (part[:digits].lstrip("0") or "0") + part[digits:]


def parse_version(text: str) -> semver.Version:
    """Parse a version string, tolerating short forms such as ``1.6`` or ``v1``.

    Leading zeros are dropped from each numeric part and short forms are
    padded with zeros. A short form carrying pre-release or
    build metadata (``1.0-kops``) is ambiguous and rejected.

    Args:
        text: Version string

    Returns:
        Parsed semantic version

    Raises:
        VersionParseError: If the string is not a valid version
    """
    if text is None:
        raise VersionParseError("version is not set")

    candidate = text.strip()
    if candidate.startswith("v"):
        candidate = candidate[1:]
    if not candidate:
        raise VersionParseError("Version string empty")

    parts = candidate.split(".", 2)
    if len(parts) < 3 and any(c in parts[-1] for c in "+-"):
        raise VersionParseError(SHORT_VERSION_METADATA_MESSAGE)
    parts = [_strip_leading_zeros(p) for p in parts]
    parts.extend(["0"] * (3 - len(parts)))
    candidate = ".".join(parts)

    try:
        return semver.Version.parse(candidate)
    except (TypeError, ValueError) as e:
        raise VersionParseError(str(e)) from e


@dataclass(frozen=True)
class VersionedIdentity:
    """A semantic version plus optional variant id and manifest content hash."""

    version: semver.Version
    variant_id: str = ""
    content_hash: str = ""

    @classmethod
    def from_strings(cls, version: str, variant_id: str = "", content_hash: str = ""):
        return cls(parse_version(version), variant_id or "", content_hash or "")

    def __str__(self) -> str:
        s = str(self.version)
        if self.variant_id:
            s += f"={self.variant_id}"
        if self.content_hash:
            s += f"@{self.content_hash}"
        return s


def replaces(old: VersionedIdentity, new: VersionedIdentity) -> bool:
    """Return True if ``new`` should replace ``old``.

    Rules, in order:

    1. A different variant id always replaces, whatever the versions.
    2. Same variant: a higher version replaces, a lower one never does.
    3. Same variant and version: replace only when the content hash differs.
       An empty hash counts as a value of its own.
    """
    if old.variant_id != new.variant_id:
        return True

    if new.version > old.version:
        return True
    if new.version < old.version:
        return False

    return new.content_hash != old.content_hash


def parse_constraint(constraint: str) -> list[tuple[str, semver.Version]]:
    """Split a constraint such as ``">=1.4.0 <1.6.0"`` into comparator clauses.

    Raises:
        ConstraintParseError: If any clause is not ``<op><version>``
    """
    clauses = []
    for clause in constraint.split():
        match = _CLAUSE_PATTERN.match(clause)
        if not match:
            raise ConstraintParseError(f"invalid version constraint clause {clause!r}")
        op = match.group(1) or "="
        try:
            # Range clauses must be full versions
            version = semver.Version.parse(match.group(2))
        except ValueError as e:
            raise ConstraintParseError(f"invalid version constraint clause {clause!r}: {e}") from e
        clauses.append((op, version))
    return clauses


def matches(constraint: str, cluster_version: semver.Version) -> bool:
    """Check that ``cluster_version`` satisfies every clause of ``constraint``.

    An empty constraint matches any version.

    Raises:
        ConstraintParseError: If the constraint cannot be parsed
    """
    if not constraint or not constraint.strip():
        return True

    for op, version in parse_constraint(constraint):
        if not _OPERATORS[op](cluster_version, version):
            return False
    return True
