import logging
from typing import List, Optional, Sequence
from urllib.parse import quote

import requests

from config.settings import Settings
from utils.text_utils import clean_text, dedup_preserve_order

logger = logging.getLogger(__name__)

WIKI_SUMMARY_URL = "https://{locale}.wikipedia.org/api/rest_v1/page/summary/{title}"

# returned when nothing usable was found; callers compare against it
NO_DESCRIPTION = "No wikipedia description found."

# body text of Wikipedia's "page does not exist" placeholder
_UNAVAILABLE_PHRASE = "other reasons this message may be displayed:"


def name_variants(scientific_name: str, common_names: Optional[Sequence[str]] = None) -> List[str]:
    """
    Titles to try, in order:
    - scientific name joined with underscores, then verbatim
    - each common name joined with underscores, then verbatim
    """
    names = [scientific_name.replace(" ", "_"), scientific_name]
    for common in common_names or []:
        common = (common or "").strip()
        if not common:
            continue
        names.append(common.replace(" ", "_"))
        names.append(common)
    return dedup_preserve_order(names)


def _usable(extract: str) -> bool:
    return bool(extract) and extract.strip().lower() != _UNAVAILABLE_PHRASE


class WikiClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.http = session or requests.Session()
        self.http.headers["User-Agent"] = settings.wiki_user_agent

    def fetch_extract(self, title: str, locale: str) -> str:
        """One summary lookup. Returns "" on any failure."""
        url = WIKI_SUMMARY_URL.format(locale=locale, title=quote(title, safe=""))
        try:
            r = self.http.get(url, timeout=self.settings.wiki_timeout)
            logger.debug("Wikipedia %s -> HTTP %s", url, r.status_code)
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug("Wikipedia lookup failed for %s: %s", url, e)
            return ""

        if not isinstance(data, dict):
            return ""
        extract = data.get("extract")
        if not isinstance(extract, str):
            return ""
        return clean_text(extract)

    def describe(self, scientific_name: str, common_names: Optional[Sequence[str]] = None) -> str:
        """
        First usable summary across name variants x locales, or NO_DESCRIPTION.
        Never raises.
        """
        for title in name_variants(scientific_name or "", common_names):
            for locale in self.settings.wiki_locales:
                extract = self.fetch_extract(title, locale)
                if _usable(extract):
                    logger.info("Wikipedia description found via %s:%s", locale, title)
                    return extract

        logger.warning("No Wikipedia description for %r", scientific_name)
        return NO_DESCRIPTION
