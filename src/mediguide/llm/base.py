# ============================================================================
# src/mediguide/llm/base.py
# ============================================================================
"""
Text-Completion Oracle Interface

The core only needs `complete(system_prompt, user_prompt, ...) -> text`.
Prescription parsing and the medicine chat both ask for JSON and read it
back with `extract_json`, which tolerates the usual model noise.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from json_repair import repair_json

logger = logging.getLogger(__name__)


class BackendType(Enum):
    OLLAMA = "ollama"


def extract_json(response_text: str) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of generated text.

    The whole answer is tried first, then the first balanced `{...}` block
    (models like to wrap JSON in prose). Each candidate is parsed strictly
    and, failing that, through json_repair (single quotes, trailing commas).

    Returns:
        The object, or None when the text holds no usable JSON object
    """
    if not response_text or not response_text.strip():
        logger.warning("Empty model answer, no JSON to extract")
        return None

    candidates = [response_text.strip()]
    block = _first_object_block(response_text)
    if block and block != candidates[0]:
        candidates.append(block)

    for candidate in candidates:
        data = _load_object(candidate)
        if data is not None:
            return data

    logger.warning(f"No JSON object in model answer: {response_text[:200]}...")
    return None


def _load_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    try:
        repaired = repair_json(candidate, return_objects=True)
    except Exception as e:
        logger.debug(f"json_repair gave up: {e}")
        return None

    # an empty repair result means json_repair found nothing to keep
    if isinstance(repaired, dict) and repaired:
        logger.debug("Model answer needed json_repair")
        return repaired
    return None


def _first_object_block(text: str) -> Optional[str]:
    start = text.find('{')
    if start == -1:
        return None

    depth = 0
    for i in range(start, len(text)):
        if text[i] == '{':
            depth += 1
        elif text[i] == '}':
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    # unbalanced: hand the tail to json_repair
    return text[start:]


class TextCompletionOracle(ABC):
    """
    A model that turns (system prompt, user prompt) into text.

    Subclasses implement complete() and health_check(); timing statistics
    are kept here through _record_inference().
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._calls = 0
        self._seconds = 0.0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Complete a prompt.

        Args:
            system_prompt: instructions and output schema
            user_prompt: request content
            temperature: sampling temperature (None = backend default)
            json_mode: constrain output to a JSON object
            timeout: seconds before OracleTimeoutError (None = backend default)

        Raises:
            OracleTimeoutError, OracleUnavailableError, OracleError
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """{"healthy": bool, "backend": str, "model": str, "details": str}"""
        pass

    async def close(self) -> None:
        pass

    def extract_json(self, response_text: str) -> Optional[Dict[str, Any]]:
        return extract_json(response_text)

    def _record_inference(self, seconds: float) -> None:
        self._calls += 1
        self._seconds += seconds

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "inference_count": self._calls,
            "total_inference_time": self._seconds,
            "average_inference_time": self._seconds / self._calls if self._calls else 0.0,
        }
