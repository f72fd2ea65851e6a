import re
from typing import Iterable, List

_WHITESPACE_RUN = re.compile(r"\s+")


def clean_text(s: str) -> str:
    if not s:
        return s
    return (
        s.replace("===Description===", "")
         .replace("===", "")
         .replace("==", "")
         .replace("\r", "")
         .strip()
    )


def collapse_whitespace(s: str) -> str:
    return _WHITESPACE_RUN.sub(" ", s or "").strip()


def dedup_preserve_order(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for x in items:
        if x and x not in seen:
            out.append(x)
            seen.add(x)
    return out
