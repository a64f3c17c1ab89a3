# ============================================================================
# src/mediguide/druginfo/service.py
# ============================================================================
"""
Drug Information Service

Lookup order:
1. Local knowledge base, exact name / generic / brand match
2. Local knowledge base, fuzzy score
3. OpenFDA label API (optional)

A miss raises NotFoundError. Bulk lookups keep positions aligned with the
input and turn misses into None.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..constants.drug_knowledge import LOCAL_DRUGS
from ..core.schemas import DrugInfo
from ..utils.exceptions import NotFoundError, OracleError
from .openfda import OpenFDAClient

logger = logging.getLogger(__name__)

SCORE_EXACT = 100
SCORE_PREFIX = 80
SCORE_GENERIC = 75
SCORE_BRAND = 70
SCORE_CONTAINS = 60

MIN_FUZZY_QUERY = 3
MAX_FUZZY_RESULTS = 5


def _entry_to_info(entry: Dict[str, Any]) -> DrugInfo:
    return DrugInfo(
        name=entry["name"],
        generic_name=entry.get("generic_name"),
        brand_names=list(entry.get("brand_names", [])),
        indications=list(entry.get("indications", [])),
        mechanism=entry.get("mechanism_of_action"),
        side_effects=list(entry.get("common_side_effects", [])),
        precautions=list(entry.get("precautions", [])),
        dosage_forms=list(entry.get("dosage_forms", [])),
        typical_dose=entry.get("typical_dosage_range"),
        max_daily_dose=entry.get("max_daily_dose"),
        source="local",
    )


class DrugInfoService:
    """Local-first drug information lookup."""

    def __init__(
        self,
        knowledge_base: Sequence[Dict[str, Any]] = LOCAL_DRUGS,
        openfda_client: Optional[OpenFDAClient] = None,
    ):
        self.knowledge_base = knowledge_base
        self.openfda_client = openfda_client

    def search_local(self, drug_name: str) -> Optional[DrugInfo]:
        query = drug_name.strip().lower()
        if not query:
            return None

        for entry in self.knowledge_base:
            if (
                entry["name"].lower() == query
                or (entry.get("generic_name") or "").lower() == query
                or any(brand.lower() == query for brand in entry.get("brand_names", []))
            ):
                return _entry_to_info(entry)
        return None

    def fuzzy_search(self, query: str) -> List[DrugInfo]:
        """Scored partial matches, best first, at most five."""
        query = query.strip().lower()
        if len(query) < MIN_FUZZY_QUERY:
            return []

        scored = []
        for entry in self.knowledge_base:
            name = entry["name"].lower()
            if name == query:
                score = SCORE_EXACT
            elif name.startswith(query):
                score = SCORE_PREFIX
            elif query in name:
                score = SCORE_CONTAINS
            elif any(query in brand.lower() for brand in entry.get("brand_names", [])):
                score = SCORE_BRAND
            elif query in (entry.get("generic_name") or "").lower():
                score = SCORE_GENERIC
            else:
                continue
            scored.append((score, entry))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [_entry_to_info(entry) for _, entry in scored[:MAX_FUZZY_RESULTS]]

    async def get_drug_info(self, drug_name: str) -> DrugInfo:
        """
        Resolve one drug name.

        Raises:
            NotFoundError: no local entry and no OpenFDA label
        """
        local = self.search_local(drug_name)
        if local is not None:
            return local

        fuzzy = self.fuzzy_search(drug_name)
        if fuzzy:
            return fuzzy[0]

        if self.openfda_client is not None and drug_name.strip():
            try:
                remote = await self.openfda_client.fetch(drug_name)
            except OracleError as e:
                logger.warning(f"OpenFDA lookup failed for '{drug_name}': {e}")
                remote = None
            if remote is not None:
                return remote

        raise NotFoundError(f"No drug information found for '{drug_name}'", drug_name=drug_name)

    async def get_bulk_drug_info(self, drug_names: Sequence[str]) -> List[Optional[DrugInfo]]:
        """Concurrent lookups; result[i] belongs to drug_names[i], None on a miss."""
        results = await asyncio.gather(
            *(self.get_drug_info(name) for name in drug_names),
            return_exceptions=True,
        )

        infos: List[Optional[DrugInfo]] = []
        for name, result in zip(drug_names, results):
            if isinstance(result, NotFoundError):
                logger.warning(f"Drug info lookup miss: {name}")
                infos.append(None)
            elif isinstance(result, BaseException):
                raise result
            else:
                infos.append(result)
        return infos
