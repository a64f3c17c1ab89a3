# ============================================================================
# src/mediguide/pipeline/orchestrator.py
# ============================================================================
"""
Prescription Pipeline

This is the MAIN entry point for prescription processing.

Flow:
1. Validate input (text or image)
2. OCR through the image-to-text oracle (images only)
3. Quality gate (rejects unreadable input)
4. Text parse (rule extractor or LLM parser)
5. Per-medication confidence gate
6. Drug information lookup (concurrent)
7. Interaction check
8. Explainability cards
9. Nudges and adherence score

Validation and quality failures short-circuit. Oracle failures abort the
request with no partial plan. Drug-info misses never abort.
"""

import logging
import time
import uuid
from statistics import mean
from typing import List, Optional

from ..config.pipeline_config import PipelineSettings, pipeline_settings
from ..constants.contraindications import DEFAULT_CONTRAINDICATIONS, ContraindicationTable
from ..core.schemas import (
    ClarificationQuestion,
    ErrorInfo,
    MedicationPlan,
    OCRResult,
    ParseRequest,
    ParseResponse,
    ParserMode,
)
from ..druginfo.openfda import OpenFDAClient
from ..druginfo.service import DrugInfoService
from ..explainability.composer import ExplainabilityComposer
from ..extraction.rule_extractor import RuleBasedExtractor
from ..gate.confidence_gate import IMAGE_QUALITY_QUESTION, ConfidenceGate
from ..interactions.interaction_checker import build_interaction_report
from ..llm.ollama_client import OllamaTextOracle
from ..llm.prescription_parser import PrescriptionLLMParser
from ..nudges.adherence import calculate_adherence_score
from ..nudges.nudge_generator import NudgeGenerator
from ..ocr.base import ImageToTextOracle
from ..ocr.paddle_ocr import get_paddle_ocr_recognizer
from ..utils.exceptions import (
    ImageQualityError,
    InputValidationError,
    MediGuideError,
    OracleUnavailableError,
)
from ..utils.logging import LogAdapter

logger = logging.getLogger(__name__)

INTERACTION_WARNING = "Potential interactions detected. Please review with your doctor or pharmacist."
NO_MEDICATIONS_WARNING = "No medications could be identified. Please check the prescription text."


class PrescriptionPipeline:
    """
    Sequential per-request pipeline.

    Oracles are optional: without an OCR oracle image requests fail with
    oracle_unavailable; without an LLM parser the llm mode does the same.
    """

    def __init__(
        self,
        extractor: Optional[RuleBasedExtractor] = None,
        gate: Optional[ConfidenceGate] = None,
        composer: Optional[ExplainabilityComposer] = None,
        nudge_generator: Optional[NudgeGenerator] = None,
        drug_info: Optional[DrugInfoService] = None,
        ocr: Optional[ImageToTextOracle] = None,
        llm_parser: Optional[PrescriptionLLMParser] = None,
        contraindications: ContraindicationTable = DEFAULT_CONTRAINDICATIONS,
        settings: PipelineSettings = pipeline_settings,
    ):
        self.settings = settings
        self.extractor = extractor or RuleBasedExtractor(settings.EXTRACTOR_BASE_CONFIDENCE)
        self.gate = gate or ConfidenceGate()
        self.composer = composer or ExplainabilityComposer()
        self.nudge_generator = nudge_generator or NudgeGenerator(settings.NUDGE_LIMIT)
        self.drug_info = drug_info
        self.ocr = ocr
        self.llm_parser = llm_parser
        self.contraindications = contraindications

    async def process(self, request: ParseRequest) -> ParseResponse:
        """
        Run the whole pipeline for one request.

        Never raises: every failure is reported through `response.error`.
        """
        start = time.perf_counter()
        log = LogAdapter(logger, {"request_id": uuid.uuid4().hex[:8]})

        try:
            response = await self._run(request, log)
        except MediGuideError as e:
            log.warning(f"Request failed ({e.code}): {e}")
            response = ParseResponse(
                success=False,
                error=ErrorInfo(code=e.code, message=e.user_message, cause=e.cause),
            )
        except Exception as e:
            log.exception(f"Unexpected pipeline failure: {e}")
            response = ParseResponse(
                success=False,
                error=ErrorInfo(
                    code=MediGuideError.code,
                    message=MediGuideError.default_user_message,
                    cause=str(e),
                ),
            )

        response.processing_time_ms = (time.perf_counter() - start) * 1000
        log.info(f"Processed in {response.processing_time_ms:.1f}ms (success={response.success})")
        return response

    async def _run(self, request: ParseRequest, log: LogAdapter) -> ParseResponse:
        ocr_result = await self._read_input(request, log)
        warnings: List[str] = []

        # Quality gate
        if request.image_bytes:
            quality = self.gate.check_ocr_quality(ocr_result)
            if not quality.acceptable:
                return self._quality_failure(ocr_result, quality.reason, quality.recommendation, log)

        gate_result = self.gate.evaluate(ocr_result.confidence)
        if not gate_result.passed:
            return self._quality_failure(
                ocr_result,
                f"OCR confidence {gate_result.overall_confidence:.2f} below minimum",
                None,
                log,
            )
        warnings.extend(gate_result.warnings)

        # Parse
        plan = await self._parse(ocr_result, request, log)
        records = plan.medications
        if not records:
            warnings.append(NO_MEDICATIONS_WARNING)

        self._gate_medications(plan)

        # Drug information
        names = [record.name for record in records]
        if self.drug_info is not None:
            drug_infos = await self.drug_info.get_bulk_drug_info(names)
        else:
            drug_infos = [None] * len(records)

        # Interactions
        report = build_interaction_report(
            records,
            request.conditions,
            request.allergies,
            self.contraindications,
        )
        if report.has_interactions:
            warnings.append(INTERACTION_WARNING)

        # Explainability
        cards = self.composer.compose_all(records, drug_infos)
        self.composer.attach_questions(cards, records, plan.clarification_questions)

        # Nudges
        nudges = self.nudge_generator.generate(
            records,
            request.user_preferences,
            request.adherence_patterns,
        )

        log.info(
            f"{len(records)} medication(s), {len(plan.clarification_questions)} question(s), "
            f"{len(report.drug_interactions)} drug interaction(s), {len(nudges)} nudge(s)"
        )

        return ParseResponse(
            success=True,
            medication_plan=plan,
            explainability_cards=cards,
            interaction_results=report.drug_interactions,
            interaction_report=report,
            nudges=nudges,
            warnings=warnings,
            adherence=calculate_adherence_score(records),
            ocr=ocr_result,
        )

    async def _read_input(self, request: ParseRequest, log: LogAdapter) -> OCRResult:
        has_text = bool(request.raw_text and request.raw_text.strip())
        if not has_text and not request.image_bytes:
            raise InputValidationError("No prescription text or image provided")

        # Images win over text
        if request.image_bytes:
            if self.ocr is None:
                raise OracleUnavailableError("No image-to-text oracle configured", oracle="ocr")
            hints = [request.language_hint] if request.language_hint else None
            ocr_result = await self.ocr.recognize(request.image_bytes, hints)
            log.info(f"OCR produced {len(ocr_result.tokens)} token(s) at confidence {ocr_result.confidence:.2f}")
            return ocr_result

        return OCRResult.from_text(request.raw_text, request.language_hint or "en")

    async def _parse(self, ocr_result: OCRResult, request: ParseRequest, log: LogAdapter) -> MedicationPlan:
        mode = request.parser_mode or ParserMode(self.settings.PARSER_MODE)

        if mode == ParserMode.LLM:
            if self.llm_parser is None:
                raise OracleUnavailableError("No text-completion oracle configured", oracle="llm")
            log.info("Parsing with LLM parser")
            return await self.llm_parser.parse(ocr_result)

        records = self.extractor.extract(ocr_result.text, ocr_result.lines)
        return MedicationPlan(
            medications=records,
            extracted_language=ocr_result.language,
            confidence=mean(r.confidence for r in records) if records else 0.0,
            parser=ParserMode.RULES,
        )

    def _gate_medications(self, plan: MedicationPlan) -> None:
        """
        Add gate questions per record, skipping fields the plan already asks about.

        A model question without a medication index can only be tied to a
        record when the plan holds a single medication; otherwise every record
        keeps its own gate questions.
        """
        model_questions = list(plan.clarification_questions)
        single = len(plan.medications) == 1
        for index, record in enumerate(plan.medications):
            asked = {
                q.field for q in model_questions
                if q.medication_index == index or (single and q.medication_index is None)
            }
            for question in self.gate.evaluate_medication(record, index):
                if question.field not in asked:
                    plan.clarification_questions.append(question)
        plan.needs_confirmation = bool(plan.clarification_questions)

    @staticmethod
    def _quality_failure(
        ocr_result: OCRResult,
        reason: Optional[str],
        recommendation: Optional[str],
        log: LogAdapter,
    ) -> ParseResponse:
        error = ImageQualityError(
            reason or "Image quality below minimum threshold",
            confidence=ocr_result.confidence,
            reason=reason,
        )
        log.warning(f"Quality gate rejected input: {error}")

        question = ClarificationQuestion(
            field="image_quality",
            question=IMAGE_QUALITY_QUESTION,
            confidence=ocr_result.confidence,
        )
        warnings = ["Image quality below minimum threshold"]
        if recommendation:
            warnings.append(recommendation)

        return ParseResponse(
            success=False,
            medication_plan=MedicationPlan(
                extracted_language=ocr_result.language,
                confidence=ocr_result.confidence,
                needs_confirmation=True,
                clarification_questions=[question],
            ),
            warnings=warnings,
            ocr=ocr_result,
            error=ErrorInfo(code=error.code, message=error.user_message, cause=error.cause),
        )


def create_pipeline(settings: PipelineSettings = pipeline_settings) -> PrescriptionPipeline:
    """Wire the pipeline with the configured oracles (no network calls here)."""
    openfda = OpenFDAClient(settings) if settings.USE_OPENFDA else None
    return PrescriptionPipeline(
        drug_info=DrugInfoService(openfda_client=openfda),
        ocr=get_paddle_ocr_recognizer(),
        llm_parser=PrescriptionLLMParser(OllamaTextOracle()),
        settings=settings,
    )
