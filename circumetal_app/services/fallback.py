"""
Deterministic, network-free substitutes for model output.

Used when the model answered but its answer could not be parsed or validated.
Everything here is a pure function of the request kind, the parameters and
the stage, and always produces a payload that passes the same schema checks
as a real model answer.
"""
import math
import logging
from typing import Callable, Optional

from ..knowledge_base.stage_library import normalize_stage, stage_label
from ..models.schemas import NodeInsight, RecommendationReport, RequestKind, SuggestionSet

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS: dict[str, float] = {
    "energyConsumptionKwh": 4500,
    "waterUsageLiters": 15000,
    "transportDistanceKm": 300,
    "wasteGeneratedKg": 2200,
    "recycledContentPercentage": 25,
    "processingYieldPercentage": 85,
}

GENERIC_RECOMMENDATIONS: list[str] = [
    "Shift energy-intensive process steps to renewable electricity through on-site generation or power purchase agreements.",
    "Increase the share of recycled scrap in the feedstock to reduce primary ore extraction.",
    "Introduce closed-loop water recirculation and treat process water for reuse.",
    "Recover and valorise process residues such as slag and tailings instead of landfilling them.",
    "Optimise logistics by consolidating shipments and favouring rail or sea freight over road haulage.",
]

FOSSIL_SOURCES = ("coal", "lignite", "natural gas", "lng", "diesel", "fuel oil", "heavy oil", "petroleum", "petrol", "coke")

_METAL_KEYS = ("metalType", "metal", "material")


def _fmt(value) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        if not math.isfinite(value):
            return str(value)
        if value == int(value):
            return f"{int(value):,}"
        return f"{value:,.2f}".rstrip("0").rstrip(".")
    if isinstance(value, int):
        return f"{value:,}"
    return str(value).strip()


def _present(params: dict, key: str) -> bool:
    value = params.get(key)
    if value is None or isinstance(value, (dict, list)):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _metal_name(params: dict) -> Optional[str]:
    for key in _METAL_KEYS:
        if _present(params, key) and isinstance(params[key], str):
            return params[key].strip()
    return None


def _is_fossil(source: str) -> bool:
    lowered = source.lower()
    return any(f in lowered for f in FOSSIL_SOURCES)


def _raw_material_insight(p: dict, metal: str) -> tuple[str, str]:
    circular = (
        f"Reduce dependence on virgin {metal} ore by increasing scrap and secondary feedstock. "
        "Reprocessing tailings can recover residual metal and cut the volume of new extraction."
    )
    if _present(p, "oreGrade"):
        circular = (
            f"With an ore grade of {_fmt(p['oreGrade'])}%, each tonne of {metal} requires moving large volumes "
            "of rock, so substituting secondary feedstock has high leverage. "
            "Reprocessing tailings can recover residual metal and cut the volume of new extraction."
        )

    impacts = []
    if _present(p, "energyConsumptionMining"):
        impacts.append(f"Mining consumes {_fmt(p['energyConsumptionMining'])} kWh, a major source of extraction-stage emissions.")
    if _present(p, "waterConsumptionMining"):
        impacts.append(f"Water withdrawal of {_fmt(p['waterConsumptionMining'])} litres puts pressure on local water resources.")
    if _present(p, "landUse"):
        impacts.append(f"The operation disturbs {_fmt(p['landUse'])} of land, affecting habitats and requiring rehabilitation.")
    if _present(p, "miningLocation"):
        impacts.append(f"Site conditions in {_fmt(p['miningLocation'])} determine biodiversity and water-stress risks.")
    if not impacts:
        impacts = [
            "Extraction typically dominates land disturbance and generates large volumes of waste rock and tailings.",
            "Diesel-powered haulage and comminution drive most of the stage's energy use.",
        ]
    return circular, " ".join(impacts[:3])


def _processing_insight(p: dict, metal: str) -> tuple[str, str]:
    circular_parts = []
    if _present(p, "energySource"):
        source = _fmt(p["energySource"])
        if _is_fossil(source):
            circular_parts.append(
                f"Transitioning away from {source} toward renewable electricity or green hydrogen is the largest lever for this stage."
            )
        else:
            circular_parts.append(
                f"The current {source} supply is a sound base; pairing it with waste-heat recovery can lower demand further."
            )
    else:
        circular_parts.append("Electrifying furnaces on renewable power and recovering waste heat are the main levers for this stage.")
    if _present(p, "processingYield"):
        circular_parts.append(
            f"Raising the {_fmt(p['processingYield'])}% yield and recycling slag and dust back into the process keeps more {metal} in the loop."
        )
    else:
        circular_parts.append(f"Recycling slag, dross and dust back into the process keeps more {metal} in the loop.")

    impacts = []
    if _present(p, "energyConsumptionProcessing"):
        impacts.append(f"Processing uses {_fmt(p['energyConsumptionProcessing'])} kWh, making it the most energy-intensive stage.")
    if _present(p, "emissionsCO2"):
        impacts.append(f"Reported emissions of {_fmt(p['emissionsCO2'])} kg CO2 dominate the process carbon footprint.")
    if _present(p, "waterConsumptionProcessing"):
        impacts.append(f"Water use of {_fmt(p['waterConsumptionProcessing'])} litres creates effluent that needs treatment.")
    if not impacts:
        impacts = [
            "Smelting and refining are usually the most energy- and emissions-intensive steps in metal production.",
            "Off-gases, slag and process effluent require careful control.",
        ]
    return " ".join(circular_parts), " ".join(impacts[:3])


def _manufacturing_insight(p: dict, metal: str) -> tuple[str, str]:
    if _present(p, "scrapRate"):
        circular = (
            f"The {_fmt(p['scrapRate'])}% scrap rate is recoverable in-house; segregating and remelting offcuts closes the loop. "
            "Design for disassembly makes later recovery easier."
        )
    else:
        circular = (
            "Segregating and remelting production offcuts closes the loop within the plant. "
            "Design for disassembly makes later recovery easier."
        )
    if _present(p, "recycledContent"):
        circular += f" Building on the current {_fmt(p['recycledContent'])}% recycled content lowers embodied impacts further."

    if _present(p, "energyConsumptionManufacturing"):
        impacts = (
            f"Manufacturing draws {_fmt(p['energyConsumptionManufacturing'])} kWh, mostly for forming and heat treatment. "
            "Lubricants and surface treatments add chemical burdens."
        )
    else:
        impacts = (
            f"Forming and heat treatment of {metal} products are the main energy consumers at this stage. "
            "Lubricants and surface treatments add chemical burdens."
        )
    return circular, impacts


def _transportation_insight(p: dict, metal: str) -> tuple[str, str]:
    circular = (
        "Reusable packaging and backhauling scrap on return trips make logistics part of the material loop. "
        "Consolidating shipments raises vehicle utilisation."
    )
    if _present(p, "loadFactor"):
        circular = (
            f"At a {_fmt(p['loadFactor'])}% load factor, consolidating shipments and backhauling scrap on return trips would cut empty running. "
            "Reusable packaging further reduces waste."
        )

    parts = []
    if _present(p, "transportDistance") and _present(p, "transportMode"):
        parts.append(f"Moving material {_fmt(p['transportDistance'])} km by {_fmt(p['transportMode'])} drives the stage's emissions.")
    elif _present(p, "transportDistance"):
        parts.append(f"A haul distance of {_fmt(p['transportDistance'])} km drives the stage's emissions.")
    elif _present(p, "transportMode"):
        parts.append(f"Reliance on {_fmt(p['transportMode'])} transport drives the stage's emissions.")
    if _present(p, "fuelType"):
        fuel = _fmt(p["fuelType"])
        if _is_fossil(fuel):
            parts.append(f"Transitioning away from {fuel} to electric or biofuel fleets would reduce exhaust emissions.")
        else:
            parts.append(f"The use of {fuel} already limits tailpipe emissions.")
    if not parts:
        parts = [
            "Road freight over long distances is usually the largest logistics impact.",
            "Modal shift to rail or sea lowers emissions per tonne-kilometre.",
        ]
    return circular, " ".join(parts)


def _use_insight(p: dict, metal: str) -> tuple[str, str]:
    if _present(p, "productLifetime"):
        circular = (
            f"Extending the {_fmt(p['productLifetime'])}-year product lifetime through repair and refurbishment defers new production. "
            "Take-back schemes secure the material for recycling at end of use."
        )
    else:
        circular = (
            "Repair, refurbishment and upgradeable designs extend product life and defer new production. "
            "Take-back schemes secure the material for recycling at end of use."
        )
    if _present(p, "energyConsumptionUse"):
        impacts = (
            f"In-use energy demand of {_fmt(p['energyConsumptionUse'])} kWh can outweigh production impacts over the product life. "
            "Maintenance materials add smaller recurring burdens."
        )
    else:
        impacts = (
            f"Metal products are typically low-impact in use, so the {metal} footprint is set largely upstream. "
            "Maintenance materials add smaller recurring burdens."
        )
    return circular, impacts


def _end_of_life_insight(p: dict, metal: str) -> tuple[str, str]:
    if _present(p, "recyclingRate"):
        circular = (
            f"Raising the {_fmt(p['recyclingRate'])}% recycling rate through better collection and sorting returns more {metal} to production. "
            "Metals can be recycled repeatedly without loss of properties."
        )
    else:
        circular = (
            f"Improved collection and sorting return more {metal} to production. "
            "Metals can be recycled repeatedly without loss of properties."
        )

    parts = []
    if _present(p, "landfillRate"):
        parts.append(f"Landfilling {_fmt(p['landfillRate'])}% of end-of-life material loses valuable metal and risks leaching.")
    if _present(p, "disposalMethod"):
        parts.append(f"The current disposal route ({_fmt(p['disposalMethod'])}) determines how much material is lost.")
    if _present(p, "recoveryEfficiency"):
        parts.append(f"A recovery efficiency of {_fmt(p['recoveryEfficiency'])}% sets the ceiling on material returned to use.")
    if not parts:
        parts = [
            "Landfilled metal is a lost resource and can leach contaminants over time.",
            "Incineration recovers little of the embodied value.",
        ]
    return circular, " ".join(parts[:3])


def _recycling_insight(p: dict, metal: str) -> tuple[str, str]:
    parts = []
    if _present(p, "recycledContent"):
        parts.append(f"Increasing recycled content beyond the current {_fmt(p['recycledContent'])}% directly displaces primary {metal}.")
    else:
        parts.append(f"Every tonne of recycled {metal} displaces primary production and its mining impacts.")
    if _present(p, "scrapCollectionRate"):
        parts.append(f"Lifting the {_fmt(p['scrapCollectionRate'])}% scrap collection rate secures more secondary feedstock.")
    else:
        parts.append("Better scrap collection and sorting secure more secondary feedstock.")

    if _present(p, "energyConsumptionRecycling"):
        impacts = (
            f"Recycling requires {_fmt(p['energyConsumptionRecycling'])} kWh, typically a fraction of primary production. "
            "Contaminated scrap raises refining effort and emissions."
        )
    else:
        impacts = (
            "Secondary production typically needs far less energy than primary production. "
            "Contaminated scrap raises refining effort and emissions."
        )
    if _present(p, "recyclingProcess"):
        impacts += f" The {_fmt(p['recyclingProcess'])} route determines the remaining emissions profile."
    return " ".join(parts), impacts


_STAGE_TEMPLATES: dict[str, Callable[[dict, str], tuple[str, str]]] = {
    "raw_material": _raw_material_insight,
    "processing": _processing_insight,
    "manufacturing": _manufacturing_insight,
    "transportation": _transportation_insight,
    "use": _use_insight,
    "end_of_life": _end_of_life_insight,
    "recycling": _recycling_insight,
}


def synthesize_suggestions() -> SuggestionSet:
    return dict(DEFAULT_SUGGESTIONS)


def synthesize_report(params: dict) -> RecommendationReport:
    metal = _metal_name(params)
    subject = f"the {metal} production process" if metal else "this metallurgical process"
    summary = (
        f"A detailed AI analysis of {subject} could not be completed, so this summary is based on typical "
        "life-cycle hotspots. Metal production impacts are usually dominated by energy-intensive extraction "
        "and processing, with further contributions from water use, waste generation and transport."
    )

    recommendations = list(GENERIC_RECOMMENDATIONS)
    tailored = []
    if _present(params, "energySource") and _is_fossil(_fmt(params["energySource"])):
        tailored.append(
            f"Plan a transition away from {_fmt(params['energySource'])} as the primary energy source toward renewable supply."
        )
    for key in ("recycledContentPercentage", "recycledContent"):
        if _present(params, key):
            tailored.append(f"Set a target to raise recycled content above the current {_fmt(params[key])}%.")
            break
    return RecommendationReport(summary=summary, recommendations=tailored + recommendations)


def synthesize_node_insight(params: dict, stage: Optional[str]) -> NodeInsight:
    metal = _metal_name(params) or "metal"
    key = normalize_stage(stage)
    template = _STAGE_TEMPLATES.get(key) if key else None

    if template is None:
        label = stage_label(stage)
        return NodeInsight(
            circular_opportunities=(
                f"Review the material flows of {label} for waste streams that could be reused, recycled or recovered. "
                "Prioritise the largest flows first."
            ),
            environmental_impacts=(
                f"The main impacts of {label} are likely linked to its energy use and waste generation. "
                "Collect more stage data for a specific assessment."
            ),
        )

    circular, impacts = template(params, metal)
    return NodeInsight(circular_opportunities=circular, environmental_impacts=impacts)


def synthesize(kind: RequestKind, params: Optional[dict], stage: Optional[str] = None):
    params = params if isinstance(params, dict) else {}
    kind = RequestKind(kind)
    logger.info("LCA AI: Synthesizing fallback payload for %s (stage=%r)", kind.value, stage)

    if kind == RequestKind.SUGGEST_MISSING_PARAMETERS:
        return synthesize_suggestions()
    if kind == RequestKind.GENERATE_REPORT:
        return synthesize_report(params)
    return synthesize_node_insight(params, stage)
