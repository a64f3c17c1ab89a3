# ============================================================================
# tests/unit/test_pipeline.py
# ============================================================================
"""
Tests for the prescription pipeline
"""

import json

import pytest

from conftest import AMLODIPINE_LINE, FakeOCR, FakeTextOracle
from mediguide.core.schemas import (
    InteractionSeverity,
    OCRLine,
    OCRResult,
    OCRToken,
    ParseRequest,
    ParserMode,
)
from mediguide.druginfo.service import DrugInfoService
from mediguide.explainability.composer import NOT_AVAILABLE
from mediguide.gate.confidence_gate import IMAGE_QUALITY_QUESTION
from mediguide.llm.prescription_parser import PrescriptionLLMParser
from mediguide.pipeline.orchestrator import (
    INTERACTION_WARNING,
    NO_MEDICATIONS_WARNING,
    PrescriptionPipeline,
)
from mediguide.utils.exceptions import OracleTimeoutError


def make_pipeline(ocr=None, llm_responses=None):
    llm_parser = PrescriptionLLMParser(FakeTextOracle(llm_responses)) if llm_responses is not None else None
    return PrescriptionPipeline(drug_info=DrugInfoService(), ocr=ocr, llm_parser=llm_parser)


class TestTextRequests:
    """Typed prescriptions through the rule parser"""

    @pytest.mark.asyncio
    async def test_full_plan(self, sample_prescription):
        """Test a typed prescription produces every artefact"""
        response = await make_pipeline().process(ParseRequest(raw_text=sample_prescription))

        assert response.success is True
        assert response.error is None
        plan = response.medication_plan
        assert plan.parser == ParserMode.RULES
        assert [m.name for m in plan.medications] == ["Amlodipine", "Metformin"]
        assert [c.medication_name for c in response.explainability_cards] == ["Amlodipine", "Metformin"]
        assert response.explainability_cards[0].drug_details.source == "Local Knowledge Base"
        assert response.interaction_results == []
        assert 0 < len(response.nudges) <= 5
        assert response.adherence is not None
        assert response.processing_time_ms > 0
        assert 0.0 <= plan.confidence <= 1.0

    @pytest.mark.asyncio
    async def test_interaction_warning(self):
        """Test Aspirin with Warfarin gives one moderate interaction"""
        response = await make_pipeline().process(
            ParseRequest(raw_text="Tab Aspirin 75mg OD\nTab Warfarin 5mg OD")
        )

        assert len(response.interaction_results) == 1
        assert response.interaction_results[0].severity == InteractionSeverity.MODERATE
        assert INTERACTION_WARNING in response.warnings

    @pytest.mark.asyncio
    async def test_conditions_and_allergies(self):
        """Test request conditions and allergies reach the interaction report"""
        response = await make_pipeline().process(ParseRequest(
            raw_text="Tab Aspirin 75mg OD",
            conditions=["Peptic ulcer"],
            allergies=["NSAID"],
        ))

        report = response.interaction_report
        assert len(report.condition_interactions) == 1
        assert len(report.allergy_warnings) == 1
        assert INTERACTION_WARNING in response.warnings

    @pytest.mark.asyncio
    async def test_unknown_drug_placeholder(self):
        """Test a lookup miss still yields a card with placeholders"""
        response = await make_pipeline().process(ParseRequest(raw_text="Tab Zorbatrex 10mg OD"))

        assert response.success is True
        card = response.explainability_cards[0]
        assert card.drug_details.what_it_treats == NOT_AVAILABLE

    @pytest.mark.asyncio
    async def test_missing_frequency_asks(self):
        """Test gate questions are added per medication"""
        response = await make_pipeline().process(ParseRequest(raw_text="Paracetamol 500mg"))

        plan = response.medication_plan
        assert plan.needs_confirmation is True
        assert [q.field for q in plan.clarification_questions] == ["frequency"]
        assert plan.clarification_questions[0].medication_index == 0
        card = response.explainability_cards[0]
        assert card.uncertainty.confirmation_questions == plan.clarification_questions

    @pytest.mark.asyncio
    async def test_no_medications(self):
        """Test text without medications warns but succeeds"""
        response = await make_pipeline().process(ParseRequest(raw_text="Patient: Ravi Kumar"))

        assert response.success is True
        assert response.medication_plan.medications == []
        assert NO_MEDICATIONS_WARNING in response.warnings

    @pytest.mark.asyncio
    async def test_positive_reinforcement(self):
        """Test adherence patterns reach the nudge generator"""
        response = await make_pipeline().process(
            ParseRequest(raw_text=AMLODIPINE_LINE, adherence_patterns=[{"taken": 7}])
        )
        assert any(n.id == "positive_reinforcement_streak" for n in response.nudges)

    @pytest.mark.asyncio
    async def test_idempotent(self, sample_prescription):
        """Test identical requests give identical plans"""
        pipeline = make_pipeline()
        first = await pipeline.process(ParseRequest(raw_text=sample_prescription))
        second = await pipeline.process(ParseRequest(raw_text=sample_prescription))

        assert first.medication_plan == second.medication_plan

    @pytest.mark.asyncio
    async def test_without_drug_info_service(self):
        """Test the pipeline runs with no drug information source"""
        response = await PrescriptionPipeline().process(ParseRequest(raw_text=AMLODIPINE_LINE))

        assert response.success is True
        assert response.explainability_cards[0].drug_details.what_it_treats == NOT_AVAILABLE


class TestValidation:
    """Input validation"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_", [ParseRequest(), ParseRequest(raw_text="   \n ")])
    async def test_empty_request(self, request_):
        """Test no text and no image fails validation"""
        response = await make_pipeline().process(request_)

        assert response.success is False
        assert response.error.code == "input_validation"
        assert response.medication_plan.medications == []

    @pytest.mark.asyncio
    async def test_image_without_ocr(self, png_bytes):
        """Test image input needs an OCR oracle"""
        response = await make_pipeline().process(ParseRequest(image_bytes=png_bytes))
        assert response.error.code == "oracle_unavailable"


class TestImageRequests:
    """Photos through the OCR oracle"""

    @pytest.mark.asyncio
    async def test_low_ocr_confidence(self, png_bytes, good_ocr_result):
        """Test OCR 0.40 stops with one image quality question"""
        good_ocr_result.confidence = 0.40
        response = await make_pipeline(ocr=FakeOCR(good_ocr_result)).process(ParseRequest(image_bytes=png_bytes))

        assert response.success is False
        assert response.error.code == "image_quality"
        questions = response.medication_plan.clarification_questions
        assert len(questions) == 1
        assert questions[0].field == "image_quality"
        assert questions[0].question == IMAGE_QUALITY_QUESTION
        assert response.medication_plan.medications == []
        assert response.explainability_cards == []

    @pytest.mark.asyncio
    async def test_too_few_words(self, png_bytes):
        """Test a nearly empty photo is rejected"""
        ocr = FakeOCR(OCRResult.from_text("Amlodipine"))
        response = await make_pipeline(ocr=ocr).process(ParseRequest(image_bytes=png_bytes))

        assert response.error.code == "image_quality"
        assert "Please upload a complete prescription image" in response.warnings

    @pytest.mark.asyncio
    async def test_readable_image(self, png_bytes, good_ocr_result):
        """Test a good photo is parsed and language hints are passed on"""
        ocr = FakeOCR(good_ocr_result)
        response = await make_pipeline(ocr=ocr).process(
            ParseRequest(image_bytes=png_bytes, language_hint="hi", raw_text="ignored")
        )

        assert response.success is True
        assert response.medication_plan.medications[0].name == "Amlodipine"
        assert ocr.calls[0]["language_hints"] == ["hi"]
        assert response.ocr is good_ocr_result

    @pytest.mark.asyncio
    async def test_card_boxes_come_from_each_line(self, png_bytes):
        """Test every card points at the boxes of its own prescription line"""
        lines = []
        for y, text in ((100, "Tab Amlodipine 5mg OD"), (200, "Tab Metformin 500mg BD")):
            tokens = [
                OCRToken(text=word, confidence=0.95, bbox=((x, y), (x + 90, y), (x + 90, y + 20), (x, y + 20)))
                for x, word in zip(range(0, 1000, 100), text.split())
            ]
            lines.append(OCRLine(text=text, confidence=0.95, tokens=tokens))
        ocr_result = OCRResult(
            text="\n".join(line.text for line in lines),
            confidence=0.95,
            tokens=[token for line in lines for token in line.tokens],
            lines=lines,
        )

        response = await make_pipeline(ocr=FakeOCR(ocr_result)).process(ParseRequest(image_bytes=png_bytes))

        card = response.explainability_cards[1]
        assert card.medication_name == "Metformin"
        name_token = card.prescription_evidence.ocr_tokens[0]
        assert name_token.field == "name"
        assert name_token.bbox[0] == (100, 200)
        first_card_box = response.explainability_cards[0].prescription_evidence.ocr_tokens[0].bbox
        assert first_card_box[0] == (100, 100)

    @pytest.mark.asyncio
    async def test_warning_band(self, png_bytes, good_ocr_result):
        """Test mediocre OCR continues with a warning"""
        good_ocr_result.confidence = 0.6
        response = await make_pipeline(ocr=FakeOCR(good_ocr_result)).process(ParseRequest(image_bytes=png_bytes))

        assert response.success is True
        assert any("60.0%" in w for w in response.warnings)

    @pytest.mark.asyncio
    async def test_ocr_timeout(self, png_bytes):
        """Test an OCR timeout aborts with no partial plan"""
        ocr = FakeOCR(error=OracleTimeoutError("OCR timed out", oracle="paddleocr", timeout_seconds=120))
        response = await make_pipeline(ocr=ocr).process(ParseRequest(image_bytes=png_bytes))

        assert response.success is False
        assert response.error.code == "oracle_timeout"
        assert response.error.cause == "OCR timed out"
        assert response.medication_plan.medications == []

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, png_bytes):
        """Test unexpected errors are reported, not raised"""
        ocr = FakeOCR(error=RuntimeError("engine crashed"))
        response = await make_pipeline(ocr=ocr).process(ParseRequest(image_bytes=png_bytes))

        assert response.success is False
        assert response.error.code == "processing_error"
        assert response.error.cause == "engine crashed"


class TestLLMMode:
    """LLM parser selection"""

    @pytest.mark.asyncio
    async def test_llm_parser(self, llm_plan_json):
        """Test parser_mode=llm uses the text oracle"""
        response = await make_pipeline(llm_responses=llm_plan_json).process(
            ParseRequest(raw_text=AMLODIPINE_LINE, parser_mode=ParserMode.LLM)
        )

        assert response.success is True
        assert response.medication_plan.parser == ParserMode.LLM
        assert response.medication_plan.medications[0].duration == "30 days"

    @pytest.mark.asyncio
    async def test_invalid_llm_output(self):
        """Test malformed model output fails the request"""
        response = await make_pipeline(llm_responses="not json").process(
            ParseRequest(raw_text=AMLODIPINE_LINE, parser_mode=ParserMode.LLM)
        )

        assert response.success is False
        assert response.error.code == "invalid_llm_output"
        assert response.medication_plan.medications == []

    @pytest.mark.asyncio
    async def test_llm_not_configured(self):
        """Test llm mode without a parser"""
        response = await make_pipeline().process(
            ParseRequest(raw_text=AMLODIPINE_LINE, parser_mode=ParserMode.LLM)
        )
        assert response.error.code == "oracle_unavailable"

    @pytest.mark.asyncio
    async def test_llm_uncertain_fields_merge_gate_questions(self):
        """Test gate questions are added without repeating the model's own"""
        raw = (
            '{"medications": [{"name": "Amlodipine", "name_confidence": 0.9, '
            '"strength": "5mg", "strength_confidence": 0.4, "frequency": "OD", '
            '"frequency_normalized": "Once daily", "frequency_confidence": 0.9, '
            '"uncertain_fields": ["strength"]}], '
            '"clarification_questions": [{"field": "strength", "question": "Is it 5mg?"}]}'
        )
        response = await make_pipeline(llm_responses=raw).process(
            ParseRequest(raw_text=AMLODIPINE_LINE, parser_mode=ParserMode.LLM)
        )

        questions = response.medication_plan.clarification_questions
        assert [q.field for q in questions] == ["strength"]
        assert questions[0].question == "Is it 5mg?"
        assert response.medication_plan.needs_confirmation is True

    @pytest.mark.asyncio
    async def test_unindexed_model_question_keeps_gate_questions_for_many(self):
        """Test a model question with no medication index does not silence the gate across records"""
        medication = (
            '{{"name": "{name}", "name_confidence": 0.9, "strength": "5mg", '
            '"strength_confidence": 0.4, "frequency": "OD", "frequency_confidence": 0.9}}'
        )
        raw = (
            '{"medications": ['
            + medication.format(name="Amlodipine") + ", " + medication.format(name="Atorvastatin")
            + '], "clarification_questions": [{"field": "strength", "question": "Is it 5mg?"}]}'
        )
        response = await make_pipeline(llm_responses=raw).process(
            ParseRequest(raw_text=AMLODIPINE_LINE, parser_mode=ParserMode.LLM)
        )

        questions = response.medication_plan.clarification_questions
        assert [q.medication_index for q in questions if q.field == "strength"] == [None, 0, 1]
        assert all("strength" in r.uncertain_fields for r in response.medication_plan.medications)


class TestResponseSerialisation:
    """ParseResponse.to_dict"""

    @pytest.mark.asyncio
    async def test_to_dict_is_json_ready(self, sample_prescription):
        """Test enums collapse to strings"""
        response = await make_pipeline().process(ParseRequest(raw_text=sample_prescription))
        data = response.to_dict()

        assert data["medication_plan"]["parser"] == "rules"
        assert data["nudges"][0]["category"] == "implementation_intention"
        json.dumps(data)
