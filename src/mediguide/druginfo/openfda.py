# ============================================================================
# src/mediguide/druginfo/openfda.py
# ============================================================================
"""
OpenFDA Drug Label Client

Looks a drug up by brand or generic name on the OpenFDA label endpoint and
condenses the long label sections into their first three sentences.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import aiohttp

from ..config.pipeline_config import PipelineSettings, pipeline_settings
from ..core.schemas import DrugInfo
from ..utils.exceptions import OracleError, OracleTimeoutError, OracleUnavailableError

logger = logging.getLogger(__name__)

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
MAX_SENTENCES = 3


def extract_section(label: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    """First three sentences of the first populated label section."""
    for field_name in fields:
        values = label.get(field_name)
        if isinstance(values, list) and values:
            text = str(values[0])
            sentences = SENTENCE_PATTERN.findall(text) or [text]
            return [s.strip() for s in sentences[:MAX_SENTENCES] if s.strip()]
    return []


def label_to_drug_info(label: Dict[str, Any], query: str) -> DrugInfo:
    openfda = label.get("openfda") or {}
    brand_names = openfda.get("brand_name") or []
    generic_names = openfda.get("generic_name") or []
    mechanism = " ".join(extract_section(label, ["mechanism_of_action", "clinical_pharmacology"]))

    return DrugInfo(
        name=(brand_names or generic_names or [query])[0],
        generic_name=generic_names[0] if generic_names else None,
        brand_names=list(brand_names),
        indications=extract_section(label, ["indications_and_usage", "purpose"]),
        mechanism=mechanism or None,
        side_effects=extract_section(label, ["adverse_reactions", "side_effects"]),
        precautions=extract_section(label, ["precautions", "contraindications"]),
        dosage_forms=list(openfda.get("dosage_form") or []),
        source="openfda",
        source_url=f"https://open.fda.gov/drug/label/?search={quote(query)}",
    )


class OpenFDAClient:
    """Async OpenFDA label lookup; one HTTP session per call."""

    def __init__(self, settings: PipelineSettings = pipeline_settings):
        self.url = settings.OPENFDA_URL
        self.timeout = settings.OPENFDA_TIMEOUT

    def build_url(self, drug_name: str) -> str:
        name = quote(drug_name.strip())
        return (
            f'{self.url}?search=openfda.brand_name:"{name}"'
            f'+openfda.generic_name:"{name}"&limit=1'
        )

    async def fetch(self, drug_name: str) -> Optional[DrugInfo]:
        """
        Fetch label information for a drug.

        Returns:
            DrugInfo, or None when OpenFDA has no label for the name

        Raises:
            OracleTimeoutError, OracleUnavailableError, OracleError
        """
        url = self.build_url(drug_name)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status == 404:
                        return None
                    if response.status != 200:
                        raise OracleError(
                            f"OpenFDA API error ({response.status}) for '{drug_name}'",
                            oracle="openfda",
                        )
                    data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise OracleTimeoutError(
                f"OpenFDA request timed out after {self.timeout}s",
                oracle="openfda",
                timeout_seconds=self.timeout,
            )
        except aiohttp.ClientConnectorError as e:
            raise OracleUnavailableError(f"Cannot reach OpenFDA: {e}", oracle="openfda")
        except aiohttp.ClientError as e:
            raise OracleError(f"OpenFDA request failed: {e}", oracle="openfda")

        results = (data or {}).get("results") or []
        if not results:
            return None

        logger.debug(f"OpenFDA label found for '{drug_name}'")
        return label_to_drug_info(results[0], drug_name)
