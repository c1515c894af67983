"""
Relevance ranking of raw document text.

Noisy documents are cut down to the lines most likely to describe cleaning or
maintenance work before they are sent to the (expensive) structured
extraction step. Each sentence-like unit is scored with TF-IDF weights over a
fixed domain vocabulary plus flat bonuses for structural hints; the top
units are kept and returned in their original document order.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import List

from cleanops.models import RankedContent, RankedLine

MAX_UNITS = 30
MIN_UNIT_CHARS = 3

PATTERN_BONUS = 5.0
VERB_BONUS = 3.0

VOCABULARY = (
    # actions
    "clean", "wipe", "dust", "vacuum", "hoover", "mop", "wash", "shampoo", "polish",
    "sanitize", "sanitise", "disinfect", "remove", "empty", "refill", "replace", "scrub",
    "rinse", "deep clean", "service", "inspect",
    # context
    "infection", "vacant", "routine", "quarterly",
    # surfaces and fittings
    "floor", "carpet", "curtain", "blind", "mirror", "window", "furniture", "wardrobe",
    "cupboard", "bed", "chair", "table", "desk", "surface", "radiator", "frame", "sink",
    "toilet", "commode", "extractor", "fan", "skirting", "paintwork", "soft furnishings",
    "door", "handle", "light switch", "bin",
    # places
    "room", "area", "communal", "bathroom", "bedroom", "kitchen", "hallway", "lounge",
    # document structure
    "frequency", "date label",
)

_TERM_PATTERNS = {term: re.compile(r"\b" + re.escape(term)) for term in VOCABULARY}

_PATTERN_HINTS = (
    re.compile(r"task|checklist|schedule"),
    re.compile(r"^(area|room|date|type):"),
    re.compile(r"\(frequency:"),
    re.compile(r"^- "),
    re.compile(r"daily|weekly|monthly|quarterly|annually"),
)
_CORE_VERBS = re.compile(r"clean|dust|wipe|vacuum|mop|sanitize|polish|wash")

_BULLET_RE = re.compile(r"^(?:[•·▪◦●\-\*–]+|\d+[.)]|\d+(?=\s))\s*")
_FREQUENCY_NOTE_RE = re.compile(r"\(\s*frequency\s*:?\s*([^)]+?)\s*\)", re.I)
_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")

_REPLACEMENTS = (
    ("\u0000", ""),
    ("\u201c", '"'),
    ("\u201d", '"'),
    ("\u2018", "'"),
    ("\u2019", "'"),
    ("\u00a0", " "),
    ("\t", " "),
    ("\r\n", "\n"),
    ("\r", "\n"),
)


def normalize_text(text: str) -> str:
    for old, new in _REPLACEMENTS:
        text = text.replace(old, new)
    return text


def normalize_unit(unit: str, bulleted: bool = False) -> str:
    """Canonical ``- `` bullet prefix and ``(Frequency: X)`` annotation."""
    unit = _FREQUENCY_NOTE_RE.sub(lambda m: f"(Frequency: {m.group(1)})", unit.strip())
    if bulleted:
        unit = "- " + unit
    return unit


def split_units(text: str) -> List[str]:
    """Split into sentence-like units, one or more per line, normalised.

    A bullet marker at the start of a line applies to the first sentence of
    that line only.
    """
    units = []
    for line in normalize_text(text).split("\n"):
        line = line.strip()
        if not line:
            continue
        bullet = _BULLET_RE.match(line)
        if bullet:
            line = line[bullet.end():]
        for i, piece in enumerate(_SENTENCE_END_RE.split(line)):
            if len(piece.strip()) < MIN_UNIT_CHARS:
                continue
            units.append(normalize_unit(piece, bulleted=bool(bullet) and i == 0))
    return units


class RelevanceRanker:
    def __init__(self, max_units: int = MAX_UNITS):
        self.max_units = max_units

    def _tfidf_scores(self, units: List[str]) -> List[float]:
        n = len(units)
        lowered = [u.lower() for u in units]
        counts: List[Counter] = []
        df: Counter = Counter()
        for u in lowered:
            c = Counter()
            for term, pattern in _TERM_PATTERNS.items():
                hits = len(pattern.findall(u))
                if hits:
                    c[term] = hits
            counts.append(c)
            df.update(c.keys())

        # raw term counts, smoothed idf (a term in every unit still weighs 1.0)
        scores = []
        for c in counts:
            score = 0.0
            for term, hits in c.items():
                score += hits * (math.log((1 + n) / (1 + df[term])) + 1.0)
            scores.append(score)
        return scores

    def score_units(self, units: List[str]) -> List[float]:
        scores = self._tfidf_scores(units)
        out = []
        for unit, base in zip(units, scores):
            lower = unit.lower()
            score = base
            if any(p.search(lower) for p in _PATTERN_HINTS):
                score += PATTERN_BONUS
            if _CORE_VERBS.search(lower):
                score += VERB_BONUS
            out.append(score)
        return out

    def rank(self, text: str) -> RankedContent:
        units = split_units(text)
        scores = self.score_units(units)

        # sorted() is stable, so equal scores keep first-seen order
        by_score = sorted(range(len(units)), key=lambda i: -scores[i])
        selected = sorted(by_score[: self.max_units])

        return RankedContent(
            lines=[
                RankedLine(text=units[i], score=round(scores[i], 4), position=i)
                for i in selected
            ],
            total_units=len(units),
        )
