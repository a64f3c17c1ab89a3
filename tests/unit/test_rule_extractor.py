# ============================================================================
# tests/unit/test_rule_extractor.py
# ============================================================================
"""
Tests for the rule-based medication extractor
"""

import pytest

from mediguide.core.schemas import OCRLine, OCRResult, OCRToken, TimingBuckets
from mediguide.extraction.rule_extractor import RuleBasedExtractor


def _ocr_line(text, y):
    """OCR line whose word boxes sit side by side at height y."""
    tokens = []
    for i, word in enumerate(text.split()):
        x = i * 100
        tokens.append(OCRToken(
            text=word,
            confidence=0.95,
            bbox=((x, y), (x + 90, y), (x + 90, y + 20), (x, y + 20)),
        ))
    return OCRLine(text=text, confidence=0.95, tokens=tokens)


class TestFullLine:
    """A line carrying every field"""

    def test_amlodipine_line(self, extractor, amlodipine_line):
        """Test form, name, strength, dose pattern, duration and food"""
        records = extractor.extract(amlodipine_line)

        assert len(records) == 1
        record = records[0]
        assert record.name == "Amlodipine"
        assert record.form == "Tablet"
        assert record.route == "Oral"
        assert record.strength == "5mg"
        assert record.frequency == "1-0-0"
        assert record.frequency_normalized == "Once daily"
        assert record.timing_buckets == TimingBuckets(morning=1)
        assert record.duration == "30 days"
        assert record.food_instruction == "before breakfast"
        assert record.confidence == 1.0
        assert record.source_line == amlodipine_line

    def test_evidence_records_rules(self, extractor, amlodipine_line):
        """Test every matched field cites its rule"""
        record = extractor.extract_line(amlodipine_line)

        assert record.evidence["name"].matched_rule == "form_drug_extraction"
        assert record.evidence["strength"].matched_rule == "strength_extraction"
        assert record.evidence["frequency"].matched_rule == "dose_pattern_extraction"
        assert record.evidence["duration"].matched_rule == "duration_extraction"
        assert record.evidence["food_instruction"].matched_rule == "food_instruction_extraction"
        assert record.name_confidence == pytest.approx(0.9)

    def test_evidence_cites_ocr_tokens(self, extractor, amlodipine_line):
        """Test tokens on the line are attached to evidence"""
        ocr = OCRResult.from_text(amlodipine_line)
        record = extractor.extract_line(amlodipine_line, ocr.tokens)

        cited = [t.text for t in record.evidence["strength"].tokens]
        assert "5mg" in cited

    def test_name_evidence_cites_drug_word(self, extractor, amlodipine_line):
        """Test the form word is not cited as name evidence"""
        record = extractor.extract_line(amlodipine_line, OCRResult.from_text(amlodipine_line).tokens)

        assert record.evidence["name"].matched_text == "Tab Amlodipine"
        assert [t.text for t in record.evidence["name"].tokens] == ["Amlodipine"]

    def test_evidence_stays_on_its_own_line(self, extractor):
        """Test each record cites tokens from its own OCR line only"""
        lines = [
            _ocr_line("Tab Amlodipine 5mg OD", y=100),
            _ocr_line("Tab Metformin 500mg BD", y=200),
        ]
        text = "\n".join(line.text for line in lines)

        records = extractor.extract(text, lines)

        assert [r.name for r in records] == ["Amlodipine", "Metformin"]
        name_tokens = records[1].evidence["name"].tokens
        assert [t.text for t in name_tokens] == ["Metformin"]
        assert name_tokens[0].bbox[0][1] == 200
        assert all(t.bbox[0][1] == 200 for t in records[1].evidence["strength"].tokens)
        assert [t.text for t in records[0].evidence["frequency"].tokens] == ["OD"]
        assert records[0].evidence["frequency"].tokens[0].bbox[0][1] == 100

    def test_repeated_lines_pair_in_order(self, extractor):
        """Test identical text lines take successive OCR lines"""
        lines = [
            _ocr_line("Tab Metformin 500mg BD", y=100),
            _ocr_line("Tab Metformin 500mg BD", y=300),
        ]
        records = extractor.extract("\n".join(line.text for line in lines), lines)

        assert [r.evidence["name"].tokens[0].bbox[0][1] for r in records] == [100, 300]

    def test_text_without_ocr_lines_cites_nothing(self, extractor, amlodipine_line):
        """Test typed text with no OCR lines yields evidence without tokens"""
        record = extractor.extract(amlodipine_line)[0]
        assert record.evidence["name"].tokens == []


class TestFrequency:
    """Frequency codes, counts and timing words"""

    def test_abbreviation(self, extractor):
        """Test BD maps to twice daily, morning and evening"""
        record = extractor.extract_line("Metformin 500mg BD after food")

        assert record.name == "Metformin"
        assert record.frequency == "BD"
        assert record.frequency_normalized == "Twice daily"
        assert record.timing_buckets.populated() == ["morning", "evening"]
        assert record.food_instruction == "after food"
        assert record.evidence["name"].matched_rule == "drug_name_extraction"

    def test_dose_pattern_beats_abbreviation(self, extractor):
        """Test a D-D-D pattern wins over a code on the same line"""
        line = "Tab Augmentin 625mg 1-0-1 TDS"
        record = extractor.extract_line(line, OCRResult.from_text(line).tokens)

        assert record.frequency == "1-0-1"
        assert record.frequency_normalized == "Twice daily"
        assert record.timing_buckets == TimingBuckets(morning=1, evening=1)
        assert record.evidence["frequency"].matched_rule == "dose_pattern_extraction"
        assert [t.text for t in record.evidence["frequency"].tokens] == ["1-0-1"]

    def test_times_per_day(self, extractor):
        """Test '3 times daily' maps to TDS"""
        record = extractor.extract_line("Amoxicillin 500mg 3 times daily for 5 days")
        assert record.frequency == "TDS"
        assert record.frequency_normalized == "Three times daily"
        assert record.duration == "5 days"

    def test_missing_frequency_defaults(self, extractor):
        """Test no frequency falls back to OD with zero confidence"""
        record = extractor.extract_line("Paracetamol 500mg")

        assert record.frequency == "OD"
        assert record.frequency_confidence == 0.0
        assert "frequency" not in record.evidence

    def test_timing_word_overrides_buckets(self, extractor):
        """Test a bare timing word replaces the code's buckets"""
        record = extractor.extract_line("Cap Omeprazole 20mg OD night")

        assert record.name == "Omeprazole"
        assert record.form == "Capsule"
        assert record.timing_buckets == TimingBuckets(night=1)

    def test_last_timing_word_wins(self, extractor):
        """Test the last timing word on a line is used"""
        record = extractor.extract_line("Tab Montelukast 10mg morning or bedtime")
        assert record.timing_buckets == TimingBuckets(night=1)

    def test_as_needed_note(self, extractor):
        """Test PRN lines carry a note"""
        record = extractor.extract_line("Tab Ibuprofen 400mg PRN")

        assert record.frequency == "PRN"
        assert record.notes == "Take only when needed"


class TestScreening:
    """Non-medication lines are dropped"""

    @pytest.mark.parametrize("line", [
        "Patient: Ravi Kumar",
        "Date: 12/03/2024",
        "12/03/2024",
        "1234 5678",
        "Advice: review after 1 month",
        "ok",
    ])
    def test_non_medication_lines(self, extractor, line):
        """Test header, date and numeric lines produce nothing"""
        assert extractor.extract_line(line) is None

    def test_line_without_indicator(self, extractor):
        """Test prose with no strength, frequency, form or duration is skipped"""
        assert extractor.extract_line("Drink plenty of water") is None

    def test_sample_prescription(self, extractor, sample_prescription):
        """Test only medication lines survive, in source order"""
        records = extractor.extract(sample_prescription)
        assert [r.name for r in records] == ["Amlodipine", "Metformin"]

    def test_empty_text(self, extractor):
        """Test empty input yields no records"""
        assert extractor.extract("") == []


class TestDeterminism:
    """Same input, same output"""

    def test_idempotent(self, extractor, sample_prescription):
        """Test repeated extraction is identical"""
        assert extractor.extract(sample_prescription) == extractor.extract(sample_prescription)

    def test_duplicates_kept(self, extractor, amlodipine_line):
        """Test repeated lines produce repeated records"""
        records = extractor.extract(f"{amlodipine_line}\n{amlodipine_line}")
        assert len(records) == 2

    def test_confidence_bounds(self, extractor):
        """Test confidence is within [base, 1]"""
        base = extractor.base_confidence
        for line in ["Tab Zinc 50mg", "Vitamin D3 60000 IU weekly", "Syp Cetirizine 5ml HS"]:
            record = extractor.extract_line(line)
            if record is not None:
                assert base <= record.confidence <= 1.0

    def test_invalid_base_confidence(self):
        """Test base confidence outside [0, 1] is rejected"""
        with pytest.raises(ValueError):
            RuleBasedExtractor(base_confidence=1.5)
