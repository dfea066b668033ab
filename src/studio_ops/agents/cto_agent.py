"""
CTO Agent - advisory architecture suggestion for a planned feature set.
"""

from typing import List

from pydantic import Field

from .base_agent import DecisionModel, GenerativeDecisionUnit, parse_object
from .product_agent import FeatureSpec

REALTIME_KEYWORDS = ("message", "chat", "realtime", "real-time")
PAYMENT_KEYWORDS = ("payment", "payout")
MICROSERVICES_THRESHOLD = 10
SCALABILITY_THRESHOLD = 5


class ArchitectureInput(DecisionModel):
    project_id: str
    features: List[FeatureSpec] = Field(default_factory=list)


class ArchitectureAdvice(DecisionModel):
    architecture: str = Field(min_length=1)
    tech_stack: List[str]
    constraints: List[str] = Field(default_factory=list)
    recommendations: str = ""


def _mentions(features: List[FeatureSpec], keywords) -> bool:
    return any(k in f.description.lower() for f in features for k in keywords)


class CTOAgent(GenerativeDecisionUnit[ArchitectureInput, ArchitectureAdvice]):
    name = "CTO Agent"
    temperature = 0.6

    def describe(self, data: ArchitectureInput) -> str:
        return f"Providing architecture for project: {data.project_id}"

    def build_prompt(self, data: ArchitectureInput) -> str:
        features = ", ".join(f"{f.name}: {f.description}" for f in data.features)
        return (
            "As a CTO, propose a technical architecture for this project:\n\n"
            f"Project ID: {data.project_id}\n"
            f"Features: {features}\n\n"
            "In a casual-professional tone, cover:\n"
            "1. Architectural approach (monolith, microservices, serverless, ...)\n"
            "2. Technology stack\n"
            "3. Technical constraints and risks\n"
            "4. General recommendations\n\n"
            'Format: JSON {"architecture": "...", "techStack": [...], '
            '"constraints": [...], "recommendations": "..."}'
        )

    def parse_response(self, text: str, data: ArchitectureInput) -> ArchitectureAdvice:
        return parse_object(text, ArchitectureAdvice)

    def fallback(self, data: ArchitectureInput) -> ArchitectureAdvice:
        features = data.features
        feature_count = len(features)
        realtime = _mentions(features, REALTIME_KEYWORDS)
        payment = _mentions(features, PAYMENT_KEYWORDS)

        if feature_count > MICROSERVICES_THRESHOLD:
            architecture = "Microservices architecture"
        elif realtime:
            architecture = "Event-driven architecture with a microservices approach"
        else:
            architecture = "Monolithic architecture"

        tech_stack = ["TypeScript", "Node.js", "PostgreSQL"]
        if realtime:
            tech_stack += ["WebSocket", "Redis"]
        tech_stack.append("React Native" if _mentions(features, ("mobile",)) else "React")
        if payment:
            tech_stack.append("Stripe API")

        constraints = []
        if payment:
            constraints.append("Payment security is critical, PCI-DSS compliance required")
        if realtime:
            constraints.append("Low latency required, WebSocket connection management matters")
        if feature_count > SCALABILITY_THRESHOLD:
            constraints.append("Scalability must be considered, a caching strategy is needed")

        if constraints:
            notes = "Things to watch: " + ". ".join(constraints)
        else:
            notes = "Following standard best practices is sufficient."
        recommendations = (
            f"The project has {feature_count} features. {architecture} looks suitable. {notes}"
        )

        return ArchitectureAdvice(
            architecture=architecture,
            tech_stack=tech_stack,
            constraints=constraints,
            recommendations=recommendations,
        )
