# personalizer/text.py
from __future__ import annotations
from typing import List
import math
import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

WORDS_PER_MINUTE = 200
MIN_TOKEN_LENGTH = 3  # tokens of length <= 2 are dropped

_SPLIT = re.compile(r"\W+")
_WS = re.compile(r"\s+")

STOP_WORDS = frozenset("""
a about above after again against all am an and any are as at
be because been before being below between both but by
can did do does doing don down during each few for from further
had has have having he her here hers herself him himself his how
i if in into is it its itself just me might more most must my myself
no nor not now of off on once only or other our ours ourselves out over own
re s same she should so some such t than that the their theirs them themselves
then there these they this those through to too under until up very
was we were what when where which while who whom why will with would
you your yours yourself yourselves
""".split())


def strip_html(text: str) -> str:
    """Flatten markup to plain text and collapse whitespace."""
    if not text:
        return ""
    if "<" in text:
        with warnings.catch_warnings():
            # Plain text that merely contains "<" is fine to parse
            warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
            soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        text = soup.get_text(" ")
    return _WS.sub(" ", text).strip()


def tokenize(text: str) -> List[str]:
    """Lowercased content words: markup stripped, short tokens and stop words dropped."""
    plain = strip_html(text).lower()
    return [
        w for w in _SPLIT.split(plain)
        if len(w) >= MIN_TOKEN_LENGTH and w not in STOP_WORDS
    ]


def word_count(content: str) -> int:
    return len(strip_html(content).split())


def estimate_reading_time(content: str) -> int:
    """Reading time in whole minutes at 200 wpm, never below one minute."""
    return max(1, math.ceil(word_count(content) / WORDS_PER_MINUTE))


def estimate_reading_seconds(content: str) -> int:
    return estimate_reading_time(content) * 60
