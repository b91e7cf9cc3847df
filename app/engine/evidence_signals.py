"""Evidence signal extractor - PURE keyword classification of case facts.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Every signal has an explicit missing/unknown default that is filled once
here, so downstream rule bodies never test for an absent value.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, replace
from typing import Any

from app.engine.catalogue import (
    CATALOGUE_BY_KEY,
    SATISFYING_ACTIONS,
    SIGNAL_KEYWORDS,
    SIGNAL_TIMELINE_ITEMS,
    affirms_any,
    contains_any,
    mentions_any,
    metadata_text,
    normalize,
    remove_phrases,
    split_sentences,
    text_matches_item,
)
from app.engine.disclosure_state import (
    RULE_DEPENDENCY_SERVED,
    RULE_DOCUMENT,
    RULE_IMPACT_MAP,
    RULE_TIMELINE,
    DisclosureState,
)
from app.schemas.v1.cases import CaseDocument, Charge, DisclosureTimelineEntry

# Value domains per enum signal, in a fixed order (used by flip-condition search).
SIGNAL_DOMAINS: dict[str, tuple[str, ...]] = {
    "id_strength": ("strong", "weak", "unknown"),
    "medical_evidence": ("sustained", "single_brief", "unknown"),
    "cctv_sequence": ("prolonged", "brief", "unknown", "missing"),
    "weapon_use": ("sustained_targeted", "brief_incidental", "none", "unknown"),
    "disclosure_completeness": ("complete", "gaps", "unknown"),
    "pace_compliance": ("compliant", "breaches", "unknown"),
    "prosecution_strength": ("strong", "moderate", "weak", "unknown"),
}

STRONG_ID_SOURCES = 3
PROSECUTION_INDICATOR_THRESHOLD = 2
# A waived dependency says CCTV is not needed, not that it exists.
CCTV_EVIDENCING_RULES: frozenset[str] = frozenset(
    {RULE_TIMELINE, RULE_DOCUMENT, RULE_DEPENDENCY_SERVED, RULE_IMPACT_MAP}
)


@dataclass(frozen=True)
class EvidenceSignals:
    """Fixed-shape bag of named evidence signals. Never holds None."""

    cctv_sequence: str = "missing"
    body_worn_video_present: bool = False
    disclosure_completeness: str = "unknown"
    pace_compliance: str = "unknown"
    interview_evidence: bool = False
    custody_evidence: bool = False
    medical_evidence: str = "unknown"
    id_strength: str = "unknown"
    id_sources: int = 0
    weapon_use: str = "unknown"
    prosecution_strength: str = "unknown"
    disclosure_gaps: tuple[str, ...] = ()

    def with_values(self, **changes: Any) -> EvidenceSignals:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["disclosure_gaps"] = list(self.disclosure_gaps)
        return data


@dataclass(frozen=True)
class _Corpus:
    texts: tuple[str, ...]
    charge_texts: tuple[str, ...]
    timeline: tuple[DisclosureTimelineEntry, ...]

    @property
    def is_empty(self) -> bool:
        return not self.texts and not self.charge_texts and not self.timeline


def _document_text(document: CaseDocument, include_raw_text: bool) -> str:
    parts = [normalize(document.name), normalize(document.title), metadata_text(document.metadata)]
    if include_raw_text:
        parts.append(normalize(document.raw_text))
    return " ".join(p for p in parts if p)


def _build_corpus(
    documents: Sequence[CaseDocument],
    charges: Sequence[Charge],
    timeline: Sequence[DisclosureTimelineEntry],
    can_generate_analysis: bool,
) -> _Corpus:
    texts = tuple(
        text for text in (_document_text(d, can_generate_analysis) for d in documents) if text
    )
    charge_texts = tuple(
        text for text in (f"{normalize(c.offence)} {normalize(c.section)}".strip() for c in charges)
        if text
    )
    return _Corpus(texts=texts, charge_texts=charge_texts, timeline=tuple(timeline))


def _topic_texts(texts: Sequence[str], topic: Sequence[str]) -> list[str]:
    return [text for text in texts if contains_any(text, topic)]


def _served_on_timeline(signal: str, timeline: Sequence[DisclosureTimelineEntry]) -> bool:
    items = [CATALOGUE_BY_KEY[key] for key in SIGNAL_TIMELINE_ITEMS[signal]]
    return any(
        normalize(entry.action) in SATISFYING_ACTIONS
        and any(text_matches_item(entry.item, item) for item in items)
        for entry in timeline
    )


def _present(signal: str, corpus: _Corpus) -> bool:
    if _topic_texts(corpus.texts, SIGNAL_KEYWORDS[signal]["topic"]):
        return True
    return _served_on_timeline(signal, corpus.timeline)


def _qualify(texts: Sequence[str], table: dict[str, tuple[str, ...]], order: Sequence[str]) -> str:
    """First qualifier (in order) found in the topic texts, else 'unknown'."""
    joined = " ".join(texts)
    for value in order:
        if contains_any(joined, table[value]):
            return value
    return "unknown"


def _cctv_sequence(corpus: _Corpus, disclosure_state: DisclosureState) -> str:
    """CCTV is evidenced by the disclosure state or by a catalogue CCTV pattern.

    Generic words such as "footage" never make it present on their own, so
    the signal cannot disagree with the CCTV disclosure items.
    """
    table = SIGNAL_KEYWORDS["cctv"]
    items = [CATALOGUE_BY_KEY[key] for key in SIGNAL_TIMELINE_ITEMS["cctv"]]
    item_patterns = tuple(p for item in items for p in item.patterns)
    served = any(
        disclosure_state.satisfied_by.get(item.key) in CCTV_EVIDENCING_RULES for item in items
    )
    if not served and not _topic_texts(corpus.texts, item_patterns):
        return "missing"
    texts = _topic_texts(corpus.texts, table["topic"] + item_patterns)
    return _qualify(texts, table, ("prolonged", "brief"))

def _medical_evidence(corpus: _Corpus) -> str:
    table = SIGNAL_KEYWORDS["medical"]
    texts = _topic_texts(corpus.texts, table["topic"])
    if not texts:
        return "unknown"
    return _qualify(texts, table, ("sustained", "single_brief"))


def _weapon_use(corpus: _Corpus) -> str:
    table = SIGNAL_KEYWORDS["weapon"]
    texts = _topic_texts(corpus.texts + corpus.charge_texts, table["topic"])
    if not texts:
        return "unknown" if corpus.is_empty else "none"
    return _qualify(texts, table, ("sustained_targeted", "brief_incidental"))


def _id_sources(corpus: _Corpus, cctv_sequence: str) -> int:
    joined = " ".join(corpus.texts)
    sources = sum(
        1 for keywords in SIGNAL_KEYWORDS["identification"].values() if contains_any(joined, keywords)
    )
    if cctv_sequence != "missing":
        sources += 1
    return sources


def _id_strength(id_sources: int) -> str:
    if id_sources >= STRONG_ID_SOURCES:
        return "strong"
    if id_sources >= 1:
        return "weak"
    return "unknown"


def _pace_compliance(corpus: _Corpus, interview: bool, custody: bool) -> str:
    """'breaches' needs an affirmed breach in a sentence about interview or custody."""
    table = SIGNAL_KEYWORDS["pace_breach"]
    for text in corpus.texts:
        for sentence in split_sentences(text):
            if not mentions_any(sentence, table["topic"]):
                continue
            if affirms_any(remove_phrases(sentence, table["excluded"]), table["breach"]):
                return "breaches"
    if interview or custody:
        return "compliant"
    return "unknown"


def _disclosure_completeness(state: DisclosureState, corpus: _Corpus, has_dependencies: bool) -> str:
    if corpus.is_empty and not has_dependencies:
        return "unknown"
    return "gaps" if state.missing_items else "complete"


def _prosecution_strength(signals: EvidenceSignals, corpus: _Corpus) -> str:
    if corpus.is_empty:
        return "unknown"
    strong = [
        signals.id_strength == "strong",
        signals.medical_evidence == "sustained",
        signals.cctv_sequence == "prolonged",
        signals.weapon_use == "sustained_targeted",
    ]
    weak = [
        signals.id_strength == "weak",
        signals.disclosure_completeness == "gaps",
        signals.pace_compliance == "breaches",
    ]
    if sum(strong) >= PROSECUTION_INDICATOR_THRESHOLD:
        return "strong"
    if sum(weak) >= PROSECUTION_INDICATOR_THRESHOLD:
        return "weak"
    return "moderate"


def extract_evidence_signals(
    disclosure_state: DisclosureState,
    documents: Sequence[CaseDocument] = (),
    charges: Sequence[Charge] = (),
    timeline: Sequence[DisclosureTimelineEntry] = (),
    has_dependencies: bool = False,
    can_generate_analysis: bool = True,
) -> EvidenceSignals:
    """Classify case facts into a total EvidenceSignals record.

    When analysis is gated only document names, titles, metadata and the
    timeline are consulted; raw text is ignored.
    """
    corpus = _build_corpus(documents, charges, timeline, can_generate_analysis)

    cctv_sequence = _cctv_sequence(corpus, disclosure_state)
    interview = _present("interview", corpus)
    custody = _present("custody", corpus)
    id_sources = _id_sources(corpus, cctv_sequence)

    signals = EvidenceSignals(
        cctv_sequence=cctv_sequence,
        body_worn_video_present=_present("body_worn_video", corpus),
        disclosure_completeness=_disclosure_completeness(disclosure_state, corpus, has_dependencies),
        pace_compliance=_pace_compliance(corpus, interview, custody),
        interview_evidence=interview,
        custody_evidence=custody,
        medical_evidence=_medical_evidence(corpus),
        id_strength=_id_strength(id_sources),
        id_sources=id_sources,
        weapon_use=_weapon_use(corpus),
        disclosure_gaps=tuple(item.label for item in disclosure_state.missing_items),
    )
    return signals.with_values(prosecution_strength=_prosecution_strength(signals, corpus))
