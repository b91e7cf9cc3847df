"""Disclosure catalogue and keyword tables - declarative data plus text matchers.

This module contains ZERO database access. Every keyword list the engine
uses lives here as one row per catalogue item or signal, so extending
classification means editing a table rather than a rule body.
"""

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from app.schemas.v1.common import Severity

SATISFYING_ACTIONS: frozenset[str] = frozenset({"served", "reviewed"})
WAIVED_DEPENDENCY_STATUSES: frozenset[str] = frozenset({"not_needed"})
OPEN_DEPENDENCY_STATUSES: frozenset[str] = frozenset({"required", "helpful"})
OUTSTANDING_URGENCY_MARKERS: tuple[str, ...] = (
    "missing",
    "outstanding",
    "not received",
    "not disclosed",
)
SIMULATED_MARKER = "simulated"

# Patterns at or below this length are matched on word boundaries ("cad" must
# not fire on "decade").
_SHORT_PATTERN_LEN = 3
# Reverse containment (entry text inside a key or label) needs a minimum
# length so single letters do not match everything.
_MIN_REVERSE_MATCH_LEN = 3

SEVERITY_ORDER: dict[str, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


@dataclass(frozen=True)
class DisclosureItem:
    """One standard category of prosecution disclosure."""

    key: str
    label: str
    severity: Severity
    patterns: tuple[str, ...]
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "severity": str(self.severity)}


DISCLOSURE_CATALOGUE: tuple[DisclosureItem, ...] = (
    DisclosureItem(
        key="cctv_full_window",
        label="CCTV Full Window",
        severity=Severity.CRITICAL,
        patterns=("cctv", "camera footage", "video footage", "cctv footage", "cctv window"),
        category="visual",
    ),
    DisclosureItem(
        key="cctv_continuity",
        label="CCTV Continuity",
        severity=Severity.CRITICAL,
        patterns=("cctv continuity", "continuity log", "cctv chain of custody"),
        category="visual",
    ),
    DisclosureItem(
        key="bwv",
        label="Body Worn Video (BWV)",
        severity=Severity.CRITICAL,
        patterns=("bwv", "body worn video", "body-worn video", "body worn"),
        category="visual",
    ),
    DisclosureItem(
        key="call_999_audio",
        label="999 Call Audio",
        severity=Severity.HIGH,
        patterns=("999", "emergency call", "999 call", "emergency recording", "999 audio"),
        category="document",
    ),
    DisclosureItem(
        key="cad_log",
        label="CAD Log",
        severity=Severity.HIGH,
        patterns=("cad", "computer aided dispatch", "dispatch log", "cad log"),
        category="document",
    ),
    DisclosureItem(
        key="interview_recording",
        label="Interview Recording",
        severity=Severity.CRITICAL,
        patterns=(
            "interview recording",
            "interview audio",
            "interview video",
            "interview transcript",
            "pace interview",
        ),
        category="procedural",
    ),
    DisclosureItem(
        key="custody_record_or_custody_cctv",
        label="Custody Record / Custody CCTV",
        severity=Severity.HIGH,
        patterns=("custody record", "custody cctv", "custody footage", "custody video"),
        category="procedural",
    ),
)

CATALOGUE_BY_KEY: dict[str, DisclosureItem] = {item.key: item for item in DISCLOSURE_CATALOGUE}
CATALOGUE_ORDER: dict[str, int] = {item.key: i for i, item in enumerate(DISCLOSURE_CATALOGUE)}

# Topic keywords decide whether a signal is evidenced at all; qualifier
# keywords are then searched only in the text that mentioned the topic.
SIGNAL_KEYWORDS: dict[str, dict[str, tuple[str, ...]]] = {
    "cctv": {
        "topic": ("cctv", "camera"),
        "prolonged": ("prolonged", "sustained"),
        "brief": ("brief", "single"),
    },
    "body_worn_video": {
        "topic": ("bwv", "body worn", "body-worn"),
    },
    "identification": {
        "witness": ("witness",),
        "identification": ("identification", "identified"),
        "viper": ("viper",),
        "line_up": ("line-up", "line up", "identity parade"),
    },
    "medical": {
        "topic": ("medical", "injury", "injuries", "hospital"),
        "sustained": ("sustained", "multiple", "repeated"),
        "single_brief": ("single", "brief"),
    },
    "weapon": {
        "topic": ("weapon", "knife", "blade", "bladed article"),
        "sustained_targeted": ("sustained", "targeted", "repeated"),
        "brief_incidental": ("brief", "incidental"),
    },
    "interview": {
        "topic": ("interview", "caution"),
    },
    "custody": {
        "topic": ("custody", "pace"),
    },
    # A breach counts only when its own sentence is about interview or custody.
    "pace_breach": {
        "topic": ("interview", "caution", "custody", "pace", "code c", "code d"),
        "breach": ("breach", "non-compliant", "non compliant", "not compliant"),
        "excluded": (
            "breach of bail",
            "breach of the peace",
            "breach of a court order",
            "breach of court order",
            "breach of a restraining order",
            "breach of a non-molestation order",
            "breach of a community order",
            "breach of licence",
            "breach of license",
            "breach of conditions",
            "breach of trust",
        ),
    },
}

# Words that negate a keyword when they precede it closely in the same clause.
NEGATION_MARKERS: frozenset[str] = frozenset({"no", "not", "nil", "without", "never"})
_NEGATION_WINDOW = 4
_SENTENCE_BREAK = re.compile(r"[.;!?\n]+")
_WORD = re.compile(r"[a-z0-9']+")

# Catalogue items whose served/reviewed timeline entry proves a signal present.
SIGNAL_TIMELINE_ITEMS: dict[str, tuple[str, ...]] = {
    "cctv": ("cctv_full_window", "cctv_continuity"),
    "body_worn_video": ("bwv",),
    "interview": ("interview_recording",),
    "custody": ("custody_record_or_custody_cctv",),
}


def normalize(text: Any) -> str:
    return str(text or "").strip().lower()


def contains_pattern(text: str, pattern: str) -> bool:
    """Case-insensitive containment; short patterns match whole words only."""
    text = normalize(text)
    pattern = normalize(pattern)
    if not text or not pattern:
        return False
    if len(pattern) <= _SHORT_PATTERN_LEN:
        return re.search(rf"(?<![a-z0-9]){re.escape(pattern)}(?![a-z0-9])", text) is not None
    return pattern in text or pattern.replace(" ", "") in text


def contains_any(text: str, patterns: Iterable[str]) -> bool:
    return any(contains_pattern(text, p) for p in patterns)


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_BREAK.split(normalize(text)) if s.strip()]


def _word_regex(pattern: str) -> re.Pattern[str]:
    # Anchored at a word start; a short final word is anchored at its end too.
    tail = r"(?![a-z0-9])" if len(pattern.rsplit(" ", 1)[-1]) <= _SHORT_PATTERN_LEN else ""
    return re.compile(rf"(?<![a-z0-9]){re.escape(pattern)}{tail}")


def mentions_any(text: str, patterns: Iterable[str]) -> bool:
    """Word-anchored match, so "pace" does not fire on "space"."""
    text = normalize(text)
    return any(_word_regex(normalize(p)).search(text) for p in patterns)


def remove_phrases(text: str, phrases: Iterable[str]) -> str:
    text = normalize(text)
    for phrase in phrases:
        text = text.replace(normalize(phrase), " ")
    return text


def _is_negated(text: str, start: int) -> bool:
    clause = text[:start].rsplit(",", 1)[-1]
    preceding = _WORD.findall(clause)[-_NEGATION_WINDOW:]
    return not NEGATION_MARKERS.isdisjoint(preceding)


def affirms_any(text: str, patterns: Iterable[str]) -> bool:
    """True when some pattern occurs without a negation shortly before it.

    "no PACE breach identified" and "not in breach" do not affirm "breach";
    "a breach of Code C" does.
    """
    text = normalize(text)
    for pattern in patterns:
        for match in _word_regex(normalize(pattern)).finditer(text):
            if not _is_negated(text, match.start()):
                return True
    return False


def text_matches_item(text: str, item: DisclosureItem) -> bool:
    """Fuzzy match free text (timeline item, dependency id/label) to a catalogue item.

    Bidirectional containment against the key and label, or a keyword
    pattern hit. Empty text never matches.
    """
    t = normalize(text)
    if not t:
        return False
    key = item.key.lower()
    label = item.label.lower()
    spaced_key = key.replace("_", " ")
    if key in t or spaced_key in t or label in t:
        return True
    if len(t) >= _MIN_REVERSE_MATCH_LEN and (t in key or t in spaced_key or t in label):
        return True
    return contains_any(t, item.patterns)


def document_display_names(document: Any) -> list[str]:
    return [n for n in (normalize(document.name), normalize(document.title)) if n]


def metadata_text(metadata: Mapping[str, Any] | None) -> str:
    if not metadata:
        return ""
    return json.dumps(metadata, sort_keys=True, default=str).lower()
