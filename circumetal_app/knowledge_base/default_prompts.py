"""
Default AI prompt templates for the LCA assistant.

Each template carries {{VARIABLE}} placeholders that the prompt builder
substitutes at request time. Every template ends with an explicit description
of the JSON object the model must return, since the response parser validates
against exactly that shape.
"""

from typing import Literal, TypedDict


PromptKey = Literal["suggest_parameters", "generate_report", "node_insight"]


class PromptTemplateDefault(TypedDict):
    """
    Structure of a default prompt template.
    - key: Unique identifier for the prompt
    - name: Human-readable name of the prompt
    - description: What the prompt is used for
    - template: Prompt text with {{VARIABLE}} placeholders
    - available_variables: Placeholders the builder fills in
    """
    key: PromptKey
    name: str
    description: str
    template: str
    available_variables: list[str]


DEFAULT_PROMPTS: dict[PromptKey, PromptTemplateDefault] = {
    "suggest_parameters": {
        "key": "suggest_parameters",
        "name": "Missing Parameter Suggestions",
        "description": "Asks the model to propose realistic values for LCA parameters the user has not filled in yet.",
        "available_variables": ["{{PARAMETERS}}", "{{CANDIDATES}}"],
        "template": """You are an expert Life Cycle Assessment (LCA) analyst for the mining and metallurgy industry.
A user is providing partial data for a metallurgical process. Your task is to suggest realistic values for common MISSING parameters.

The partial data provided is:
{{PARAMETERS}}

Possible missing parameters to suggest for include: {{CANDIDATES}}.

Return your suggestions ONLY as a valid JSON object. The keys must be the parameter names listed above and the values must be the suggested inputs (numbers or short text). Do not add any text, explanation, or markdown formatting outside the JSON object.
If all relevant parameters are already present, return an empty JSON object: {}.

Example Response: {"waterUsageLiters": 50000, "transportDistanceKm": 150}""",
    },
    "generate_report": {
        "key": "generate_report",
        "name": "Sustainability Report",
        "description": "Produces a narrative summary of the process's environmental impact plus actionable recommendations.",
        "available_variables": ["{{PARAMETERS}}"],
        "template": """You are an expert Life Cycle Assessment (LCA) analyst specializing in the mining and metallurgy industry.
Analyze the following complete dataset for a specific metallurgical process:
{{PARAMETERS}}

Provide a concise summary of the process's current environmental impact and a list of specific, actionable recommendations to significantly improve its sustainability and reduce its environmental footprint. Focus on practical improvements related to energy efficiency, material sourcing (especially recycled content), waste reduction, and logistics.

Return your response as a single, valid JSON object with the following keys:
1. "summary": A brief, one-paragraph summary of the process's environmental impact.
2. "recommendations": An array of strings, ordered by expected impact, where each string is a clear, actionable recommendation.

Do not add any introductory text, concluding remarks, or any other text outside of this JSON structure.
Example of desired output:
{
  "summary": "The current copper smelting process shows high energy consumption leading to significant CO2 emissions. Water usage is also a concern, though waste generation is moderate.",
  "recommendations": [
    "Integrate renewable energy sources for smelting, targeting a 30% reduction in electricity grid dependence.",
    "Increase the recycled copper scrap input from 20% to 45% to lower virgin material extraction impacts.",
    "Optimize haulage routes from mine to plant to reduce fuel consumption by 15% through route planning software."
  ]
}""",
    },
    "node_insight": {
        "key": "node_insight",
        "name": "Life-Cycle Stage Insight",
        "description": "Short circularity and impact commentary for a single life-cycle stage node.",
        "available_variables": ["{{STAGE}}", "{{PARAMETERS}}"],
        "template": """You are an expert Life Cycle Assessment (LCA) analyst for the mining and metallurgy industry.
You are reviewing a single life-cycle stage of a metallurgical process: {{STAGE}}.

The data recorded for this stage is:
{{PARAMETERS}}

Write two short assessments of this stage:
- "circularOpportunities": 2-3 sentences on concrete opportunities to make this stage more circular (reuse, recycling, recovery, substitution).
- "environmentalImpacts": 2-3 sentences on the most significant environmental impacts of this stage.

Be specific and grounded in the data above. When numeric values are present, reference the actual values (for example "at 4,200 kWh per tonne") instead of speaking in generalities. Do not invent data that is not listed.

Return ONLY a valid JSON object with exactly these two string keys: {"circularOpportunities": "...", "environmentalImpacts": "..."}. Do not add any text or markdown outside the JSON object.""",
    },
}

PROMPT_KEYS: list[PromptKey] = ["suggest_parameters", "generate_report", "node_insight"]
