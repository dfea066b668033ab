"""
CEO Agent - approves and prioritizes a project.

Output: approved, priority (1-10, always clamped), rationale (non-empty).
"""

import json
from typing import List, Optional

from pydantic import Field, field_validator

from .base_agent import DecisionModel, GenerativeDecisionUnit, join_list, parse_object

MIN_DESCRIPTION_LENGTH = 20
BASE_PRIORITY = 5


def clamp_priority(value: int) -> int:
    return max(1, min(10, value))


class MarketInfo(DecisionModel):
    target_audience: Optional[str] = None
    market_size: Optional[str] = None
    competition: Optional[str] = None


class EvaluationInput(DecisionModel):
    name: str
    description: str = ""
    goals: List[str] = Field(default_factory=list)
    market_info: Optional[MarketInfo] = None


class Evaluation(DecisionModel):
    approved: bool
    priority: int
    rationale: str = Field(min_length=1)

    @field_validator("priority")
    @classmethod
    def _clamp(cls, v: int) -> int:
        return clamp_priority(v)


class CEOAgent(GenerativeDecisionUnit[EvaluationInput, Evaluation]):
    name = "CEO Agent"

    def describe(self, data: EvaluationInput) -> str:
        return f"Evaluating project: {data.name}"

    def build_prompt(self, data: EvaluationInput) -> str:
        market = data.market_info.model_dump(exclude_none=True) if data.market_info else {}
        return (
            "As a startup CEO, evaluate this project:\n\n"
            f"Project name: {data.name}\n"
            f"Description: {data.description}\n"
            f"Goals: {join_list(data.goals)}\n"
            f"Market info: {json.dumps(market)}\n\n"
            "In a casual-professional tone, give:\n"
            "1. Strategic fit (should it be approved?)\n"
            "2. Priority level (1-10)\n"
            "3. A short rationale\n\n"
            'Format: JSON {"approved": true/false, "priority": 1-10, "rationale": "..."}'
        )

    def parse_response(self, text: str, data: EvaluationInput) -> Evaluation:
        return parse_object(text, Evaluation)

    def fallback(self, data: EvaluationInput) -> Evaluation:
        approved = True
        priority = BASE_PRIORITY
        reasons = []

        if len(data.description or "") < MIN_DESCRIPTION_LENGTH:
            approved = False
            reasons.append("Project description is insufficient")

        if data.goals:
            priority += 1
            reasons.append("Goals are clearly defined")
        else:
            reasons.append("Goals are unclear and need to be clarified")

        market = data.market_info or MarketInfo()
        if market.target_audience:
            priority += 1
            reasons.append("Target audience is defined")
        if market.market_size:
            priority += 1
            reasons.append("Market analysis is available")

        priority = clamp_priority(priority)
        reason_text = ". ".join(reasons)

        if approved:
            rationale = (
                f"Project approved. Priority: {priority}/10. {reason_text}. "
                "Aligned with strategic goals, we can move forward."
            )
        else:
            rationale = f"Project not approved. {reason_text}. These points need to be clarified first."

        return Evaluation(approved=approved, priority=priority, rationale=rationale)
