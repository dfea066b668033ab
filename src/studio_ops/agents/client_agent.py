"""
Client Agent - refines a raw client brief into a project description.
"""

import json
from typing import List, Literal, Optional

from pydantic import Field

from .base_agent import DecisionModel, GenerativeDecisionUnit, parse_object

Scope = Literal["small", "medium", "large"]


class ClientInfo(DecisionModel):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    requirements: Optional[str] = None


class BriefInput(DecisionModel):
    raw_brief: str
    client_info: Optional[ClientInfo] = None


class RefinedBrief(DecisionModel):
    refined_description: str = Field(min_length=1)
    goals: List[str]
    requirements: List[str] = Field(default_factory=list)
    estimated_scope: Scope = "medium"


GOAL_KEYWORDS = [
    (("mvp", "minimum"), "Build and launch the MVP"),
    (("user",), "Optimize the user experience"),
    (("revenue", "sales"), "Grow revenue"),
]
DEFAULT_GOAL = "Deliver the project goals"

REQUIREMENT_KEYWORDS = [
    (("mobile", "app"), "Mobile application development"),
    (("web", "website"), "Web platform development"),
    (("backend", "api"), "Backend API development"),
    (("design", "ui"), "UI/UX design"),
]
DEFAULT_REQUIREMENT = "Requirements to be analyzed"


def _matching(text: str, table) -> List[str]:
    return [label for keywords, label in table if any(k in text for k in keywords)]


class ClientAgent(GenerativeDecisionUnit[BriefInput, RefinedBrief]):
    name = "Client Agent"
    temperature = 0.6

    def describe(self, data: BriefInput) -> str:
        return "Refining brief"

    def build_prompt(self, data: BriefInput) -> str:
        client = data.client_info.model_dump(exclude_none=True) if data.client_info else {}
        return (
            "As a client relations manager, analyze and clean up this client brief.\n\n"
            f"Client info: {json.dumps(client)}\n"
            f"Raw brief: {data.raw_brief}\n\n"
            "In a professional but friendly tone, produce:\n"
            "1. A clear, refined project description\n"
            "2. Project goals (list)\n"
            "3. Requirements (list)\n"
            "4. Estimated scope (small/medium/large)\n\n"
            'Format: JSON {"refinedDescription": "...", "goals": [...], '
            '"requirements": [...], "estimatedScope": "small|medium|large"}'
        )

    def parse_response(self, text: str, data: BriefInput) -> RefinedBrief:
        return parse_object(text, RefinedBrief)

    def fallback(self, data: BriefInput) -> RefinedBrief:
        description = data.raw_brief.strip()
        info = data.client_info
        if info and info.name:
            company = f" ({info.company})" if info.company else ""
            description = f"{info.name}{company} for: {description}"

        brief = data.raw_brief.lower()
        goals = _matching(brief, GOAL_KEYWORDS) or [DEFAULT_GOAL]
        requirements = _matching(brief, REQUIREMENT_KEYWORDS) or [DEFAULT_REQUIREMENT]

        word_count = len(data.raw_brief.split())
        if word_count < 50:
            scope = "small"
        elif word_count > 200 or "comprehensive" in brief:
            scope = "large"
        else:
            scope = "medium"

        return RefinedBrief(
            # Never empty, even for a blank brief
            refined_description=description or "Untitled project",
            goals=goals,
            requirements=requirements,
            estimated_scope=scope,
        )
