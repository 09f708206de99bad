"""Target collection resolution."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from versiontrim.models.collection import Collection
from versiontrim.trim.errors import CollectionNotFound, NoTargetCollections

logger = logging.getLogger(__name__)

_FILTER_SEPARATORS = re.compile(r"[,;\n]")


def parse_name_filter(text: Optional[str]) -> list[str]:
    """Split a comma, semicolon or newline delimited list of collection names.

    Blank entries are dropped and duplicates removed, keeping first-seen order.
    """
    if not text:
        return []

    names: list[str] = []
    for raw in _FILTER_SEPARATORS.split(text):
        name = raw.strip()
        if name and name not in names:
            names.append(name)
    return names


def load_name_filter(path: str) -> list[str]:
    """Read a collection-name filter list from a text file.

    Lines starting with '#' are comments.
    """
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return parse_name_filter("\n".join(line for line in lines if not line.lstrip().startswith("#")))


class CollectionResolver:
    """Determines which collections a run targets."""

    def resolve(
        self,
        explicit_name: Optional[str],
        name_filter: Iterable[str],
        discoverable: list[Collection],
    ) -> list[Collection]:
        """Resolve target collections.

        An explicit name selects exactly that collection. Otherwise all
        non-hidden document libraries are targets, narrowed to the filter list
        when one is given. Filter names that do not exist are ignored.
        Matching is case-sensitive.

        Args:
            explicit_name: Single collection to target (optional)
            name_filter: Collection names to restrict discovery to
            discoverable: Every collection the store reports

        Returns:
            Target collections in discovery order

        Raises:
            CollectionNotFound: If explicit_name does not exist
            NoTargetCollections: If nothing is left to target
        """
        if explicit_name:
            for collection in discoverable:
                if collection.name == explicit_name:
                    return [collection]
            raise CollectionNotFound(explicit_name)

        targets = [c for c in discoverable if c.is_target_candidate]

        wanted = set(name_filter)
        if wanted:
            known = {c.name for c in targets}
            for missing in sorted(wanted - known):
                logger.debug(f"Filter entry '{missing}' does not match any collection; ignored")
            targets = [c for c in targets if c.name in wanted]

        if not targets:
            raise NoTargetCollections()

        logger.info(f"Resolved {len(targets)} target collection(s): {', '.join(c.name for c in targets)}")
        return targets
