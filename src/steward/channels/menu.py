"""Addon menu: the winning add-on for each name across one or more catalogs."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from steward.channels.catalog import AddonSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Addon:
    """An add-on spec selected from a catalog, with the catalog it came from."""

    name: str
    channel_name: str
    channel_location: str
    spec: "AddonSpec"

    @property
    def version(self) -> str:
        return self.spec.version


@dataclass
class AddonMenu:
    """Name-keyed table holding at most one add-on per name.

    Not synchronized: concurrent merges into the same menu need external
    locking.
    """

    addons: dict[str, Addon] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.addons)

    def __contains__(self, name: object) -> bool:
        return name in self.addons

    def get(self, name: str) -> Addon | None:
        return self.addons.get(name)

    def sorted_addons(self) -> list[Addon]:
        """Return the add-ons ordered by name."""
        return [self.addons[name] for name in sorted(self.addons)]

    def merge_addons(self, other: "AddonMenu") -> None:
        """Merge another menu into this one, newest semantic version wins.

        Only the semantic version is compared; variant id and manifest hash
        are ignored here. On equal versions the current occupant is kept,
        which makes merging the same menu twice a no-op.

        Args:
            other: Menu to merge from (not modified)
        """
        for name, candidate in other.addons.items():
            existing = self.addons.get(name)
            if existing is None:
                self.addons[name] = candidate
                continue

            existing_version = existing.spec.versioned_identity.version
            candidate_version = candidate.spec.versioned_identity.version
            if candidate_version > existing_version:
                logger.debug(
                    f"[{name}] {candidate.channel_name} {candidate_version} supersedes "
                    f"{existing.channel_name} {existing_version}"
                )
                self.addons[name] = candidate
