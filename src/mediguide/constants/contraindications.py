# ============================================================================
# src/mediguide/constants/contraindications.py
# ============================================================================
"""
Contraindication Table
- Drug-drug interaction entries
- Drug-condition lists (high_risk / caution / avoid / monitor)
- Drug-allergy avoid lists

Loaded once into an immutable ContraindicationTable.
"""

from dataclasses import dataclass
from typing import Tuple

from ..utils.exceptions import ConfigurationError


DRUG_INTERACTIONS = [
    {
        "drug": "Warfarin",
        "interactions": ["Aspirin", "Ibuprofen", "Naproxen", "Diclofenac", "Clopidogrel",
                         "Amiodarone", "Fluconazole", "Metronidazole"],
        "warning": "Increased risk of bleeding when combined with blood thinners, NSAIDs or drugs that raise warfarin levels",
    },
    {
        "drug": "Aspirin",
        "interactions": ["Warfarin", "Ibuprofen", "Clopidogrel", "Methotrexate"],
        "warning": "Combining aspirin with other blood thinners or NSAIDs raises the risk of stomach bleeding",
    },
    {
        "drug": "Clopidogrel",
        "interactions": ["Omeprazole", "Esomeprazole"],
        "warning": "Some acid reducers can make clopidogrel less effective",
    },
    {
        "drug": "Metformin",
        "interactions": ["Alcohol", "Contrast dye", "Topiramate"],
        "warning": "Increased risk of lactic acidosis",
    },
    {
        "drug": "Lisinopril",
        "interactions": ["Spironolactone", "Potassium chloride", "Ibuprofen", "Naproxen"],
        "warning": "May raise potassium levels or reduce kidney function",
    },
    {
        "drug": "Losartan",
        "interactions": ["Spironolactone", "Potassium chloride", "Ibuprofen"],
        "warning": "May raise potassium levels or reduce kidney function",
    },
    {
        "drug": "Simvastatin",
        "interactions": ["Clarithromycin", "Itraconazole", "Amlodipine", "Gemfibrozil"],
        "warning": "Higher statin levels increase the risk of muscle damage",
    },
    {
        "drug": "Atorvastatin",
        "interactions": ["Clarithromycin", "Itraconazole", "Gemfibrozil"],
        "warning": "Higher statin levels increase the risk of muscle damage",
    },
    {
        "drug": "Sertraline",
        "interactions": ["Tramadol", "Sumatriptan", "Linezolid"],
        "warning": "Risk of serotonin syndrome",
    },
    {
        "drug": "Fluoxetine",
        "interactions": ["Tramadol", "Sumatriptan", "Linezolid"],
        "warning": "Risk of serotonin syndrome",
    },
    {
        "drug": "Digoxin",
        "interactions": ["Amiodarone", "Verapamil", "Furosemide"],
        "warning": "May raise digoxin levels or cause heart rhythm problems",
    },
    {
        "drug": "Sildenafil",
        "interactions": ["Nitroglycerin", "Isosorbide"],
        "warning": "Dangerous drop in blood pressure",
    },
    {
        "drug": "Azithromycin",
        "interactions": ["Hydroxychloroquine", "Amiodarone"],
        "warning": "May affect heart rhythm (QT prolongation)",
    },
    {
        "drug": "Levothyroxine",
        "interactions": ["Calcium carbonate", "Ferrous sulfate", "Omeprazole"],
        "warning": "May reduce levothyroxine absorption; separate doses by 4 hours",
    },
]

CONDITION_INTERACTIONS = [
    {
        "condition": "Pregnancy",
        "high_risk": ["Warfarin", "Isotretinoin", "Methotrexate"],
        "caution": ["Ibuprofen", "Aspirin"],
        "avoid": ["Isotretinoin", "Atorvastatin", "Simvastatin", "Lisinopril", "Losartan"],
        "monitor": ["Levothyroxine", "Metformin"],
        "warning": "Some medications can harm the developing baby",
    },
    {
        "condition": "Kidney disease",
        "high_risk": ["Metformin"],
        "caution": ["Lisinopril", "Losartan"],
        "avoid": ["Ibuprofen", "Naproxen", "Diclofenac"],
        "monitor": ["Metformin", "Digoxin"],
        "warning": "Reduced kidney function changes how these medications are cleared",
    },
    {
        "condition": "Liver disease",
        "high_risk": ["Methotrexate"],
        "caution": ["Paracetamol", "Atorvastatin", "Simvastatin"],
        "avoid": ["Methotrexate"],
        "monitor": ["Paracetamol"],
        "warning": "Liver problems can increase the effect or toxicity of these medications",
    },
    {
        "condition": "Asthma",
        "high_risk": ["Propranolol"],
        "caution": ["Aspirin", "Ibuprofen"],
        "avoid": ["Propranolol"],
        "monitor": [],
        "warning": "May trigger breathing problems",
    },
    {
        "condition": "Peptic ulcer",
        "high_risk": ["Aspirin"],
        "caution": ["Prednisolone"],
        "avoid": ["Aspirin", "Ibuprofen", "Naproxen", "Diclofenac"],
        "monitor": ["Clopidogrel"],
        "warning": "May cause stomach bleeding",
    },
    {
        "condition": "Diabetes",
        "high_risk": [],
        "caution": ["Metoprolol", "Propranolol"],
        "avoid": [],
        "monitor": ["Prednisolone", "Hydrochlorothiazide"],
        "warning": "May affect blood sugar control",
    },
    {
        "condition": "Hypertension",
        "high_risk": [],
        "caution": ["Pseudoephedrine"],
        "avoid": [],
        "monitor": ["Ibuprofen", "Naproxen", "Prednisolone"],
        "warning": "May raise blood pressure",
    },
]

ALLERGY_WARNINGS = [
    {
        "allergy": "Penicillin",
        "avoid_drugs": ["Penicillin", "Amoxicillin", "Ampicillin", "Co-amoxiclav", "Piperacillin"],
        "warning": "Penicillin allergy: this medication belongs to the penicillin family",
    },
    {
        "allergy": "Sulfa",
        "avoid_drugs": ["Sulfamethoxazole", "Co-trimoxazole", "Sulfasalazine"],
        "warning": "Sulfa allergy: this medication contains a sulfonamide",
    },
    {
        "allergy": "NSAID",
        "avoid_drugs": ["Aspirin", "Ibuprofen", "Naproxen", "Diclofenac"],
        "warning": "NSAID allergy: this medication is an anti-inflammatory painkiller",
    },
    {
        "allergy": "Cephalosporin",
        "avoid_drugs": ["Cefalexin", "Cefuroxime", "Ceftriaxone", "Cefixime"],
        "warning": "Cephalosporin allergy: this medication is a cephalosporin antibiotic",
    },
]


@dataclass(frozen=True)
class DrugInteractionEntry:
    drug: str
    interactions: Tuple[str, ...]
    warning: str


@dataclass(frozen=True)
class ConditionEntry:
    condition: str
    high_risk: Tuple[str, ...]
    caution: Tuple[str, ...]
    avoid: Tuple[str, ...]
    monitor: Tuple[str, ...]
    warning: str


@dataclass(frozen=True)
class AllergyEntry:
    allergy: str
    avoid_drugs: Tuple[str, ...]
    warning: str


@dataclass(frozen=True)
class ContraindicationTable:
    drug_interactions: Tuple[DrugInteractionEntry, ...]
    condition_interactions: Tuple[ConditionEntry, ...]
    allergy_warnings: Tuple[AllergyEntry, ...]

    @classmethod
    def from_dicts(cls, drug_interactions, condition_interactions, allergy_warnings) -> "ContraindicationTable":
        """Build a table from plain dicts; a missing key raises ConfigurationError."""
        try:
            return cls._from_dicts(drug_interactions, condition_interactions, allergy_warnings)
        except KeyError as e:
            raise ConfigurationError(f"Contraindication entry is missing key {e}")

    @classmethod
    def _from_dicts(cls, drug_interactions, condition_interactions, allergy_warnings) -> "ContraindicationTable":
        return cls(
            drug_interactions=tuple(
                DrugInteractionEntry(
                    drug=item["drug"],
                    interactions=tuple(item.get("interactions", [])),
                    warning=item.get("warning", ""),
                )
                for item in drug_interactions
            ),
            condition_interactions=tuple(
                ConditionEntry(
                    condition=item["condition"],
                    high_risk=tuple(item.get("high_risk", [])),
                    caution=tuple(item.get("caution", [])),
                    avoid=tuple(item.get("avoid", [])),
                    monitor=tuple(item.get("monitor", [])),
                    warning=item.get("warning", ""),
                )
                for item in condition_interactions
            ),
            allergy_warnings=tuple(
                AllergyEntry(
                    allergy=item["allergy"],
                    avoid_drugs=tuple(item.get("avoid_drugs", [])),
                    warning=item.get("warning", ""),
                )
                for item in allergy_warnings
            ),
        )


DEFAULT_CONTRAINDICATIONS = ContraindicationTable.from_dicts(
    DRUG_INTERACTIONS, CONDITION_INTERACTIONS, ALLERGY_WARNINGS
)
