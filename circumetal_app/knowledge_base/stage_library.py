"""
Static tables describing the life-cycle stages of a metallurgical process and
the process parameters the AI layer knows about.

STAGE_PARAMETERS is the per-stage allow-list used to narrow a parameter set
before asking for a node insight. CANDIDATE_PARAMETERS is the closed list of
names the model may propose when filling in missing data.
"""
import re
from typing import Optional

CANDIDATE_PARAMETERS: list[str] = [
    "energyConsumptionKwh",
    "waterUsageLiters",
    "transportDistanceKm",
    "wasteGeneratedKg",
    "recycledContentPercentage",
    "oreGradePercentage",
    "processingYieldPercentage",
]

STAGE_PARAMETERS: dict[str, list[str]] = {
    "raw_material": [
        "miningLocation",
        "oreGrade",
        "landUse",
        "energyConsumptionMining",
        "waterConsumptionMining",
    ],
    "processing": [
        "energySource",
        "energyConsumptionProcessing",
        "processingMethod",
        "processingYield",
        "waterConsumptionProcessing",
        "emissionsCO2",
    ],
    "manufacturing": [
        "manufacturingProcess",
        "energyConsumptionManufacturing",
        "scrapRate",
        "recycledContent",
        "productType",
    ],
    "transportation": [
        "transportMode",
        "transportDistance",
        "fuelType",
        "loadFactor",
    ],
    "use": [
        "productLifetime",
        "maintenanceFrequency",
        "energyConsumptionUse",
    ],
    "end_of_life": [
        "recyclingRate",
        "disposalMethod",
        "landfillRate",
        "recoveryEfficiency",
    ],
    "recycling": [
        "recycledContent",
        "scrapCollectionRate",
        "recyclingProcess",
        "energyConsumptionRecycling",
    ],
}

STAGE_LABELS: dict[str, str] = {
    "raw_material": "Raw Material Extraction",
    "processing": "Processing",
    "manufacturing": "Manufacturing",
    "transportation": "Transportation",
    "use": "Use Phase",
    "end_of_life": "End of Life",
    "recycling": "Recycling",
}

# Always kept in a narrowed set so stage prompts know which metal is assessed.
IDENTIFYING_PARAMETERS = ["metalType"]

_STAGE_ALIASES: dict[str, str] = {
    "rawmaterial": "raw_material",
    "rawmaterials": "raw_material",
    "rawmaterialextraction": "raw_material",
    "extraction": "raw_material",
    "mining": "raw_material",
    "processing": "processing",
    "smelting": "processing",
    "refining": "processing",
    "manufacturing": "manufacturing",
    "production": "manufacturing",
    "transportation": "transportation",
    "transport": "transportation",
    "distribution": "transportation",
    "logistics": "transportation",
    "use": "use",
    "usephase": "use",
    "usage": "use",
    "endoflife": "end_of_life",
    "eol": "end_of_life",
    "disposal": "end_of_life",
    "recycling": "recycling",
    "recovery": "recycling",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_stage(stage: Optional[str]) -> Optional[str]:
    """Map a free-form stage name ("Raw Material", "end-of-life") to its table key."""
    if not isinstance(stage, str):
        return None
    compact = _NON_ALNUM.sub("", stage.lower())
    return _STAGE_ALIASES.get(compact)


def stage_label(stage: Optional[str]) -> str:
    key = normalize_stage(stage)
    if key:
        return STAGE_LABELS[key]
    if isinstance(stage, str) and stage.strip():
        return stage.strip()
    return "this stage"


def filter_parameters_for_stage(params: dict, stage: Optional[str]) -> dict:
    key = normalize_stage(stage)
    if key is None:
        return dict(params)
    allowed = IDENTIFYING_PARAMETERS + STAGE_PARAMETERS[key]
    return {k: params[k] for k in allowed if k in params}
