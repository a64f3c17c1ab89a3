# ============================================================================
# src/mediguide/chat/medicine_chat.py
# ============================================================================
"""
Ask-about-a-medicine chat.

A first question returns a structured medicine report; a follow-up returns a
short answer about the previously discussed medicine. Answers are cached by
normalised question plus context fingerprint.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from ..config.llm_config import LLMSettings, llm_settings
from ..llm.base import TextCompletionOracle
from ..llm.prompts import (
    MEDICINE_FOLLOWUP_SYSTEM_PROMPT,
    MEDICINE_REPORT_SYSTEM_PROMPT,
    build_chat_prompt,
)
from ..utils.exceptions import InputValidationError, OracleOutputError
from .cache import ResponseCache
from .safety import validate_chat_request

logger = logging.getLogger(__name__)

REPORT_LIST_FIELDS = ("uses", "how_to_take", "common_side_effects", "red_flags", "questions_to_confirm")
REPORT_ARRAY_FIELDS = ("behavioral_nudges", "interactions")


def cache_key(message: str, context: Optional[Dict[str, Any]], is_followup: bool) -> str:
    context = context or {}
    if is_followup:
        fingerprint = f"followup-{context.get('previous_medicine') or ''}"
    else:
        fingerprint = f"query-{json.dumps(context.get('other_meds') or '', sort_keys=True, default=str)}"
    return f"{message.lower().strip()}-{fingerprint}"


def normalize_report(data: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce list fields: a lone string becomes a one-item list, anything else non-list becomes []."""
    for field_name in REPORT_LIST_FIELDS:
        value = data.get(field_name)
        if isinstance(value, str):
            data[field_name] = [value]
        elif not isinstance(value, list):
            data[field_name] = []
    for field_name in REPORT_ARRAY_FIELDS:
        if not isinstance(data.get(field_name), list):
            data[field_name] = []
    return data


class MedicineChatService:
    """Safety screen, cache, then the text-completion oracle."""

    def __init__(
        self,
        oracle: TextCompletionOracle,
        cache: ResponseCache,
        settings: LLMSettings = llm_settings,
    ):
        self.oracle = oracle
        self.cache = cache
        self.temperature = settings.CHAT_TEMPERATURE

    async def ask(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        is_followup: bool = False,
    ) -> Dict[str, Any]:
        """
        Answer one chat message.

        Returns:
            Report or follow-up dict with `_source` set to safety, cache or llm

        Raises:
            InputValidationError: empty message
            OracleOutputError: model answer missing `medicine` / `answer`
        """
        if not message or not message.strip():
            raise InputValidationError("Message is required", user_message="Message is required")

        validation = validate_chat_request(message)
        if not validation.is_safe:
            logger.info(f"Chat request refused: {validation.reason}")
            return {
                "refused": True,
                "reason": validation.reason,
                "answer": validation.refusal_message,
                "_source": "safety",
            }

        key = cache_key(message, context, is_followup)
        cached = self.cache.get(key)
        if cached is not None:
            return {**cached, "_source": "cache"}

        system_prompt = MEDICINE_FOLLOWUP_SYSTEM_PROMPT if is_followup else MEDICINE_REPORT_SYSTEM_PROMPT
        raw = await self.oracle.complete(
            system_prompt,
            build_chat_prompt(message, context, is_followup),
            temperature=self.temperature,
            json_mode=True,
        )

        data = self.oracle.extract_json(raw)
        if data is None:
            raise OracleOutputError("Chat response contained no JSON object", raw_output=raw)

        if is_followup:
            if not data.get("answer") and data.get("message"):
                data["answer"] = data["message"]
            if not data.get("answer"):
                raise OracleOutputError("Invalid follow-up structure", raw_output=raw)
        else:
            normalize_report(data)
            if not data.get("medicine"):
                raise OracleOutputError("Invalid full report structure", raw_output=raw)

        self.cache.set(key, data)
        logger.info(f"Chat answer generated ({'followup' if is_followup else 'report'})")
        return {**data, "_source": "llm"}


def generate_suggested_questions(medication_names: Optional[List[str]] = None) -> List[str]:
    """Starter questions; about the first medication when a plan is known."""
    if medication_names is None:
        return [
            "How do I read a prescription?",
            "What do medication abbreviations mean?",
            "How should I store medications?",
            "What should I do if I miss a dose?",
        ]

    if not medication_names:
        return [
            "How do I upload a prescription?",
            "What information can you provide?",
        ]

    first = medication_names[0]
    return [
        f"What is {first} used for?",
        f"What are the side effects of {first}?",
        f"When should I take {first}?",
        f"Can I take {first} with food?",
        "Are there any interactions between my medications?",
    ]
