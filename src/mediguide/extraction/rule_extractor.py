# ============================================================================
# src/mediguide/extraction/rule_extractor.py
# ============================================================================
"""
Rule-Based Medication Extractor

Line-oriented pattern matcher turning prescription text into
MedicationRecords with evidence for every matched field.

Per line:
1. Screen out headers, dates and bare numbers
2. Require a medication indicator (strength, frequency, form or duration)
3. Extract name, strength, frequency / timing, duration, food instruction
4. Score confidence additively from the matched fields

Deterministic: identical text always yields identical records.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from ..constants.abbreviations import (
    DOSES_PER_DAY_TEXT,
    FOOD_ABBREVIATIONS,
    FORM_ABBREVIATIONS,
    FORM_ROUTES,
    FREQUENCY_CODES,
    NON_MEDICATION_KEYWORDS,
)
from ..core.schemas import (
    FieldEvidence,
    MedicationRecord,
    OCRLine,
    OCRToken,
    TimingBuckets,
)
from ..utils.logging import log_performance

logger = logging.getLogger(__name__)

_FORMS = r"tabs?|caps?|syr|syp|inj|inh|oint|cr|gel|drops|susp|powder"
_UNITS = r"mcg|mg|ml|g|iu|units?"
_FREQ_CODES = r"od|bd|tds|qds|qid|prn|sos|hs|stat|q4h|q6h|q8h|q12h"
_DURATION_UNITS = r"days?|d|weeks?|wks?|w|months?|m"

# Indicators
STRENGTH_INDICATOR = re.compile(rf"\d+\s*(?:{_UNITS})\b", re.IGNORECASE)
FREQUENCY_INDICATOR = re.compile(
    rf"\b(?:{_FREQ_CODES}|q\d+h)\b|\b(?:\d+|once|twice|thrice)\s*(?:times?\s*)?(?:daily|a\s+day|per\s+day)\b",
    re.IGNORECASE,
)
FORM_INDICATOR = re.compile(rf"\b(?:{_FORMS})\b", re.IGNORECASE)
DURATION_INDICATOR = re.compile(
    rf"(?<![a-z])x\s*\d+\s*(?:{_DURATION_UNITS})\b|\bfor\s+\d+\s*(?:{_DURATION_UNITS})\b",
    re.IGNORECASE,
)

# Screening
DATE_LIKE = re.compile(r"^\d+[-/]\d+[-/]\d+")
NUMERIC_ONLY = re.compile(r"^[\d\s:]+$")

# Field patterns
FORM_DRUG_PATTERN = re.compile(rf"\b({_FORMS})\.?\s+([a-z][\w\-]+)", re.IGNORECASE)
BARE_WORD_PATTERN = re.compile(r"(?<![A-Za-z0-9])([A-Za-z][A-Za-z\-]{2,})")
STRENGTH_PATTERN = re.compile(rf"(\d+(?:\.\d+)?(?:/\d+)?)\s*({_UNITS})\b", re.IGNORECASE)
DOSE_PATTERN = re.compile(r"(?<![\d.])(\d)\s*-\s*(\d)\s*-\s*(\d)(?![\d.])")
FREQUENCY_CODE_PATTERN = re.compile(rf"\b({_FREQ_CODES})\b", re.IGNORECASE)
TIMES_PER_DAY_PATTERN = re.compile(
    r"\b(\d+|once|twice|thrice)\s*(?:times?\s*)?(?:daily|a\s+day|per\s+day)\b",
    re.IGNORECASE,
)
DURATION_PATTERN = re.compile(
    rf"(?<![a-z])x\s*(\d+)\s*({_DURATION_UNITS})\b|\bfor\s+(\d+)\s*({_DURATION_UNITS})\b",
    re.IGNORECASE,
)
FOOD_PATTERN = re.compile(
    r"\b(empty\s+stomach"
    r"|before\s+(?:meals?|food|breakfast|lunch|dinner)"
    r"|after\s+(?:meals?|food|breakfast|lunch|dinner)"
    r"|with\s+(?:meals?|food|milk)"
    r"|ac|pc)\b",
    re.IGNORECASE,
)
TIMING_WORD_PATTERN = re.compile(r"\b(morning|afternoon|evening|night|bedtime)\b", re.IGNORECASE)
AS_NEEDED_PATTERN = re.compile(r"\b(prn|sos|as\s+needed)\b", re.IGNORECASE)
MAX_DOSE_PATTERN = re.compile(r"\bmax\.?\s+\d+.*?\b(doses?|mg|ml|times)\b", re.IGNORECASE)
CITATION_WORD = re.compile(r"[\w/]+(?:[.\-][\w/]+)*")

# Words that describe how to take a drug, never the drug itself
INSTRUCTION_WORDS = frozenset({
    "mg", "mcg", "ml", "iu", "unit", "units",
    "times", "time", "daily", "day", "days", "week", "weeks", "month", "months",
    "morning", "afternoon", "evening", "night", "bedtime",
    "before", "after", "with", "food", "meal", "meals", "empty", "stomach",
    "breakfast", "lunch", "dinner", "for", "take", "then", "and", "needed",
    "once", "twice", "thrice", "max", "stat",
})

TIMING_WORD_BUCKETS = {
    "morning": "morning",
    "afternoon": "afternoon",
    "evening": "night",
    "night": "night",
    "bedtime": "night",
}

WORD_COUNTS = {"once": 1, "twice": 2, "thrice": 3}
COUNT_CODES = {1: "OD", 2: "BD", 3: "TDS", 4: "QDS"}

# Additive confidence per matched field
FORM_NAME_BONUS = 0.3
BARE_NAME_BONUS = 0.2
STRENGTH_BONUS = 0.2
DOSE_PATTERN_BONUS = 0.2
FREQUENCY_BONUS = 0.15
DURATION_BONUS = 0.1
FOOD_BONUS = 0.1

# Per-field confidence of each rule
RULE_CONFIDENCE = {
    "form_drug_extraction": 0.9,
    "drug_name_extraction": 0.7,
    "strength_extraction": 0.9,
    "dose_pattern_extraction": 0.95,
    "frequency_abbreviation": 0.9,
    "times_per_day_extraction": 0.85,
    "duration_extraction": 0.85,
    "food_instruction_extraction": 0.85,
    "timing_word_override": 0.8,
}


class RuleBasedExtractor:
    """
    Pattern-matching medication extractor.

    Args:
        base_confidence: starting confidence of every record; the result is
            clamped to [base_confidence, 1.0].
    """

    def __init__(self, base_confidence: float = 0.3):
        if not 0.0 <= base_confidence <= 1.0:
            raise ValueError(f"base_confidence must be within [0, 1], got {base_confidence}")
        self.base_confidence = base_confidence

    @log_performance(logger, "Rule-based extraction")
    def extract(self, text: str, lines: Optional[Sequence[OCRLine]] = None) -> List[MedicationRecord]:
        """
        Extract medication records from raw multi-line text.

        Args:
            text: prescription text, one medication per line expected
            lines: OCR lines of the same text; each text line cites only the
                tokens of its own OCR line

        Returns:
            Records in source line order (duplicates kept)
        """
        records = []
        ocr_lines = _OCRLineCursor(lines)
        for line in (text or "").splitlines():
            line = line.strip()
            if not line:
                continue
            record = self.extract_line(line, ocr_lines.tokens_for(line))
            if record is not None:
                records.append(record)

        logger.info(f"Extracted {len(records)} medication(s) from {len(text.splitlines()) if text else 0} line(s)")
        return records

    def extract_line(self, line: str, tokens: Optional[Sequence[OCRToken]] = None) -> Optional[MedicationRecord]:
        """
        Extract one record from a line, or None if it is not a medication line.

        `tokens` are the OCR tokens of this line only.
        """
        line = line.strip()
        if not self.is_candidate_line(line):
            return None

        line_tokens = list(tokens or [])
        evidence = {}
        confidence = self.base_confidence

        # Drug name
        name_match = self._extract_name(line)
        if name_match is None:
            logger.debug(f"No drug name found on line: {line!r}")
            return None
        name, form, name_rule, matched_name = name_match
        confidence += FORM_NAME_BONUS if name_rule == "form_drug_extraction" else BARE_NAME_BONUS
        name_confidence = RULE_CONFIDENCE[name_rule]
        evidence["name"] = _evidence(name, name_rule, matched_name, line_tokens, cite=name)

        # Strength
        strength = "Unknown"
        strength_confidence = 0.0
        strength_match = STRENGTH_PATTERN.search(line)
        if strength_match:
            strength = _format_strength(strength_match.group(1), strength_match.group(2))
            strength_confidence = RULE_CONFIDENCE["strength_extraction"]
            confidence += STRENGTH_BONUS
            evidence["strength"] = _evidence(strength, "strength_extraction", strength_match.group(0), line_tokens)

        # Frequency: dose pattern beats abbreviation
        frequency, normalized, buckets, frequency_rule, frequency_text = self._extract_frequency(line)
        frequency_confidence = 0.0
        if frequency_rule is not None:
            frequency_confidence = RULE_CONFIDENCE[frequency_rule]
            confidence += DOSE_PATTERN_BONUS if frequency_rule == "dose_pattern_extraction" else FREQUENCY_BONUS
            evidence["frequency"] = _evidence(frequency, frequency_rule, frequency_text, line_tokens)

        # Bare timing word overrides buckets, last one wins
        timing_words = TIMING_WORD_PATTERN.findall(line)
        if timing_words:
            word = timing_words[-1].lower()
            buckets = TimingBuckets(**{TIMING_WORD_BUCKETS[word]: 1})
            evidence["timing"] = _evidence(word, "timing_word_override", word, line_tokens)

        # Duration
        duration = "As directed"
        duration_confidence = 0.0
        duration_match = DURATION_PATTERN.search(line)
        if duration_match:
            count = duration_match.group(1) or duration_match.group(3)
            unit = duration_match.group(2) or duration_match.group(4)
            duration = _format_duration(int(count), unit)
            duration_confidence = RULE_CONFIDENCE["duration_extraction"]
            confidence += DURATION_BONUS
            evidence["duration"] = _evidence(duration, "duration_extraction", duration_match.group(0), line_tokens)

        # Food instruction
        food_instruction = None
        food_confidence = 0.0
        food_match = FOOD_PATTERN.search(line)
        if food_match:
            food_instruction = _normalize_food(food_match.group(1))
            food_confidence = RULE_CONFIDENCE["food_instruction_extraction"]
            confidence += FOOD_BONUS
            evidence["food_instruction"] = _evidence(
                food_instruction, "food_instruction_extraction", food_match.group(0), line_tokens
            )

        confidence = min(max(confidence, self.base_confidence), 1.0)

        return MedicationRecord(
            name=name,
            strength=strength,
            form=form,
            route=FORM_ROUTES.get(form) if form else None,
            frequency=frequency,
            frequency_normalized=normalized,
            timing_buckets=buckets,
            duration=duration,
            food_instruction=food_instruction,
            notes=_extract_notes(line),
            name_confidence=name_confidence,
            strength_confidence=strength_confidence,
            frequency_confidence=frequency_confidence,
            duration_confidence=duration_confidence,
            food_instruction_confidence=food_confidence,
            confidence=confidence,
            evidence=evidence,
            source_line=line,
        )

    def is_candidate_line(self, line: str) -> bool:
        """Screening plus indicator check."""
        if self.is_non_medication_line(line):
            return False
        return has_medication_indicator(line)

    @staticmethod
    def is_non_medication_line(line: str) -> bool:
        if len(line) < 3:
            return True

        lowered = line.lower()
        if ":" in lowered:
            label = lowered.split(":", 1)[0].strip()
            if label in NON_MEDICATION_KEYWORDS:
                return True

        first_word = re.split(r"[\s:.,]+", lowered, maxsplit=1)[0]
        if first_word in NON_MEDICATION_KEYWORDS:
            return True

        if DATE_LIKE.match(line) or NUMERIC_ONLY.match(line):
            return True

        return False

    def _extract_name(self, line: str) -> Optional[Tuple[str, Optional[str], str, str]]:
        """(name, form, rule, matched text) or None."""
        match = FORM_DRUG_PATTERN.search(line)
        if match and match.group(2).lower() not in INSTRUCTION_WORDS:
            form = FORM_ABBREVIATIONS.get(match.group(1).lower())
            return match.group(2), form, "form_drug_extraction", match.group(0)

        form_match = FORM_INDICATOR.search(line)
        form = FORM_ABBREVIATIONS.get(form_match.group(0).lower()) if form_match else None

        for word_match in BARE_WORD_PATTERN.finditer(line):
            word = word_match.group(1).strip("-")
            lowered = word.lower()
            if len(word) < 3:
                continue
            if lowered in NON_MEDICATION_KEYWORDS or lowered in INSTRUCTION_WORDS:
                continue
            if lowered in FORM_ABBREVIATIONS or lowered.upper() in FREQUENCY_CODES:
                continue
            return word, form, "drug_name_extraction", word

        return None

    def _extract_frequency(self, line: str):
        """
        Returns (frequency code, normalized text, buckets, rule or None, matched text).

        Falls back to OD / morning with no rule when nothing matches.
        """
        dose_match = DOSE_PATTERN.search(line)
        if dose_match:
            morning, afternoon, evening = (int(group) for group in dose_match.groups())
            buckets = TimingBuckets(morning=morning, afternoon=afternoon, evening=evening)
            pattern = f"{morning}-{afternoon}-{evening}"
            times = len(buckets.populated())
            normalized = DOSES_PER_DAY_TEXT.get(times, "As directed")
            return pattern, normalized, buckets, "dose_pattern_extraction", dose_match.group(0)

        code_match = FREQUENCY_CODE_PATTERN.search(line)
        if code_match:
            code = code_match.group(1).upper()
            entry = FREQUENCY_CODES[code]
            return code, entry["full"], TimingBuckets.from_mapping(entry["buckets"]), \
                "frequency_abbreviation", code_match.group(0)

        times_match = TIMES_PER_DAY_PATTERN.search(line)
        if times_match:
            raw = times_match.group(1).lower()
            times = WORD_COUNTS.get(raw) or int(raw)
            code = COUNT_CODES.get(times)
            if code is not None:
                entry = FREQUENCY_CODES[code]
                return code, entry["full"], TimingBuckets.from_mapping(entry["buckets"]), \
                    "times_per_day_extraction", times_match.group(0)

        entry = FREQUENCY_CODES["OD"]
        return "OD", entry["full"], TimingBuckets.from_mapping(entry["buckets"]), None, ""


def has_medication_indicator(line: str) -> bool:
    return bool(
        STRENGTH_INDICATOR.search(line)
        or FREQUENCY_INDICATOR.search(line)
        or FORM_INDICATOR.search(line)
        or DURATION_INDICATOR.search(line)
    )


class _OCRLineCursor:
    """Walks OCR lines in reading order, pairing each text line with its tokens."""

    def __init__(self, lines: Optional[Sequence[OCRLine]]):
        self._lines = list(lines or [])
        self._position = 0

    def tokens_for(self, line: str) -> List[OCRToken]:
        for offset in range(self._position, len(self._lines)):
            if self._lines[offset].text.strip() == line:
                self._position = offset + 1
                return list(self._lines[offset].tokens)
        return []


def _words(text: str) -> List[str]:
    return CITATION_WORD.findall(text.lower())


def _evidence(
    value: str,
    rule: str,
    matched_text: str,
    line_tokens: List[OCRToken],
    cite: Optional[str] = None,
) -> FieldEvidence:
    """Cite the line's tokens whose words appear in `cite` (the matched text by default)."""
    words = set(_words(cite if cite is not None else matched_text))
    cited = [t for t in line_tokens if words and any(word in words for word in _words(t.text))]
    return FieldEvidence(
        value=value,
        confidence=RULE_CONFIDENCE[rule],
        matched_rule=rule,
        matched_text=matched_text,
        tokens=cited,
    )


def _format_strength(amount: str, unit: str) -> str:
    unit = unit.lower()
    if unit == "iu":
        unit = "IU"
    return f"{amount}{unit}"


def _format_duration(count: int, unit: str) -> str:
    first = unit.lower()[0]
    word = {"d": "day", "w": "week", "m": "month"}[first]
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _normalize_food(raw: str) -> str:
    lowered = re.sub(r"\s+", " ", raw.lower())
    return FOOD_ABBREVIATIONS.get(lowered, lowered).lower()


def _extract_notes(line: str) -> Optional[str]:
    notes = []
    if AS_NEEDED_PATTERN.search(line):
        notes.append("Take only when needed")
    max_match = MAX_DOSE_PATTERN.search(line)
    if max_match:
        notes.append(max_match.group(0))
    return "; ".join(notes) if notes else None
