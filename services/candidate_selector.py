import logging
from typing import Protocol, Sequence

from services.errors import NotAPlant
from services.models import Candidate, Selection
from services.wiki_service import NO_DESCRIPTION
from utils.text_utils import collapse_whitespace

logger = logging.getLogger(__name__)


class Enricher(Protocol):
    def describe(self, scientific_name: str, common_names: Sequence[str]) -> str: ...


def normalize_name(name: str) -> str:
    return collapse_whitespace(name).replace("’", "'")


def is_usable_name(name: str) -> bool:
    # "spp" marks a species-group guess, not an identification
    return bool(name) and "spp" not in name.lower()


def select_candidate(candidates: Sequence[Candidate], enricher: Enricher) -> Selection:
    """
    Walks the ranked candidates in the order given and returns the first one
    that has a usable name and a Wikipedia description.
    Raises NotAPlant when none qualifies.
    """
    for candidate in candidates:
        name = normalize_name(candidate.scientific_name)
        if not is_usable_name(name):
            logger.debug("Skipping candidate %r", candidate.scientific_name)
            continue

        aliases = [c.strip() for c in candidate.common_names if c and c.strip()]
        description = enricher.describe(name, aliases)
        if description != NO_DESCRIPTION:
            logger.info("Selected %s", name)
            return Selection(plant_name=name, description=description, candidate=candidate)

    raise NotAPlant()
