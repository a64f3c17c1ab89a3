# ============================================================================
# tests/unit/test_llm_parser.py
# ============================================================================
"""
Tests for JSON extraction and the LLM prescription parser
"""

import json

import pytest

from conftest import FakeTextOracle
from mediguide.core.schemas import OCRResult, ParserMode, TimingBuckets
from mediguide.llm.prescription_parser import LLM_RULE, PrescriptionLLMParser
from mediguide.llm.prompts import build_chat_prompt, build_prescription_prompt
from mediguide.utils.exceptions import OracleOutputError, OracleTimeoutError


class TestExtractJson:
    """TextCompletionOracle.extract_json"""

    def test_plain_json(self):
        """Test a clean object"""
        assert FakeTextOracle().extract_json('{"medications": []}') == {"medications": []}

    def test_wrapped_in_prose(self):
        """Test an object surrounded by chatter"""
        data = FakeTextOracle().extract_json('Sure! Here is the plan: {"medicine": "Metformin"} Hope this helps.')
        assert data["medicine"] == "Metformin"

    def test_trailing_comma(self):
        """Test json_repair fixes common model mistakes"""
        data = FakeTextOracle().extract_json('{"medicine": "Metformin", "uses": ["Diabetes",],}')
        assert data["medicine"] == "Metformin"
        assert data["uses"] == ["Diabetes"]

    @pytest.mark.parametrize("text", ["", "   ", "no json at all"])
    def test_nothing_usable(self, text):
        """Test empty or JSON-free text"""
        assert FakeTextOracle().extract_json(text) is None


class TestDecode:
    """Permissive decoding into a MedicationPlan"""

    def test_well_formed(self, llm_plan_json):
        """Test a complete answer"""
        ocr = OCRResult.from_text("Tab Amlodipine 5mg daily")
        plan = PrescriptionLLMParser(FakeTextOracle()).decode(llm_plan_json, ocr)

        assert plan.parser == ParserMode.LLM
        assert plan.extracted_language == "en"
        assert plan.needs_confirmation is False
        record = plan.medications[0]
        assert record.name == "Amlodipine"
        assert record.form == "Tablet"
        assert record.timing_buckets == TimingBuckets(morning=1)
        assert record.food_instruction == "before breakfast"
        assert record.food_instruction_confidence == pytest.approx(0.88)
        assert record.confidence == pytest.approx((0.92 + 0.9 + 0.88 + 0.8) / 4)
        assert plan.confidence == pytest.approx(record.confidence)
        assert record.evidence["name"].matched_rule == LLM_RULE
        assert [t.text for t in record.evidence["name"].tokens] == ["Amlodipine"]

    def test_loose_values(self):
        """Test key case, bad confidences and bucket junk are tolerated"""
        raw = json.dumps({
            "Medications": [{
                "Name": "Amlodipine",
                "name_confidence": 0.9,
                "strength_confidence": "high",
                "frequency": "OD",
                "frequency_confidence": 1.7,
                "timing_buckets": {"morning": "1", "night": "x"},
                "uncertain_fields": ["name", "Strength"],
                "unexpected": "ignored",
            }],
            "clarification_questions": [
                {"field": "medication_name", "question": "Is it Amlodipine?",
                 "suggestions": ["a", "b", "c", "d", "e"]},
                {"field": "strength"},
            ],
        })
        plan = PrescriptionLLMParser(FakeTextOracle()).decode(raw)
        record = plan.medications[0]

        assert record.strength == "uncertain"
        assert record.strength_confidence == 0.0
        assert record.frequency_confidence == 1.0
        assert record.duration == "As directed"
        assert "duration" not in record.evidence
        assert record.timing_buckets == TimingBuckets(morning=1)
        assert record.uncertain_fields == ["drug_name", "strength"]
        assert record.confidence == pytest.approx((0.9 + 0.0 + 1.0 + 0.0) / 4)

        assert len(plan.clarification_questions) == 1
        question = plan.clarification_questions[0]
        assert question.field == "drug_name"
        assert question.suggestions == ["a", "b", "c", "d"]
        assert plan.needs_confirmation is True

    def test_non_finite_confidences_count_as_zero(self):
        """Test NaN and infinite confidences in the JSON answer become 0.0"""
        raw = (
            '{"medications": [{"name": "Amlodipine", "name_confidence": NaN,'
            ' "strength": "5mg", "strength_confidence": Infinity,'
            ' "frequency": "OD", "frequency_confidence": -Infinity}]}'
        )
        plan = PrescriptionLLMParser(FakeTextOracle()).decode(raw)
        record = plan.medications[0]

        assert record.name_confidence == 0.0
        assert record.strength_confidence == 0.0
        assert record.frequency_confidence == 0.0
        assert record.evidence["name"].confidence == 0.0
        assert plan.confidence == 0.0

    def test_defaults_for_missing_fields(self):
        """Test an empty medication gets safe defaults"""
        plan = PrescriptionLLMParser(FakeTextOracle()).decode('{"medications": [{}]}')
        record = plan.medications[0]

        assert record.name == "Unknown Medication"
        assert record.strength == "uncertain"
        assert record.frequency == "As directed"
        assert record.frequency_normalized == "As directed"
        assert record.confidence == 0.0

    def test_empty_plan(self):
        """Test no medications is a valid answer"""
        plan = PrescriptionLLMParser(FakeTextOracle()).decode('{"medications": []}')

        assert plan.medications == []
        assert plan.confidence == 0.0

    @pytest.mark.parametrize("raw", [
        "I could not read this prescription.",
        '{"extracted_language": "en"}',
        '{"medications": "Amlodipine"}',
    ])
    def test_invalid_output(self, raw):
        """Test unusable answers raise OracleOutputError"""
        with pytest.raises(OracleOutputError) as exc_info:
            PrescriptionLLMParser(FakeTextOracle()).decode(raw)

        assert exc_info.value.code == "invalid_llm_output"
        assert exc_info.value.raw_output == raw


class TestParse:
    """End-to-end through the oracle"""

    @pytest.mark.asyncio
    async def test_parse_calls_oracle_in_json_mode(self, llm_plan_json):
        """Test the oracle is asked for JSON with the parse temperature"""
        oracle = FakeTextOracle(llm_plan_json)
        parser = PrescriptionLLMParser(oracle)
        plan = await parser.parse(OCRResult.from_text("Tab Amlodipine 5mg OD"))

        assert len(plan.medications) == 1
        assert len(oracle.calls) == 1
        assert oracle.calls[0]["json_mode"] is True
        assert oracle.calls[0]["temperature"] == parser.temperature
        assert "Tab Amlodipine 5mg OD" in oracle.calls[0]["user_prompt"]

    @pytest.mark.asyncio
    async def test_oracle_errors_propagate(self):
        """Test oracle failures are not swallowed"""
        parser = PrescriptionLLMParser(FakeTextOracle(OracleTimeoutError("slow", oracle="ollama")))

        with pytest.raises(OracleTimeoutError):
            await parser.parse(OCRResult.from_text("Tab Amlodipine 5mg OD"))


class TestPrompts:
    """Prompt builders"""

    def test_prescription_prompt_lists_tokens(self):
        """Test tokens and confidence are included"""
        prompt = build_prescription_prompt(OCRResult.from_text("Amlodipine 5mg"))

        assert "Amlodipine" in prompt
        assert "5mg" in prompt

    def test_chat_prompt_modes(self):
        """Test follow-up and first-question prompts"""
        followup = build_chat_prompt("Can I take it at night?", {"previous_medicine": "Metformin"}, True)
        first = build_chat_prompt("What is Metformin?", {"other_meds": ["Amlodipine"]}, False)

        assert "PREVIOUS MEDICINE CONTEXT: Metformin" in followup
        assert "USER FOLLOW-UP: Can I take it at night?" in followup
        assert "USER QUERY: What is Metformin?" in first
        assert "Amlodipine" in first
