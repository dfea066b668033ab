"""
Product Agent - plans the feature set and picks the MVP.

MVP = features with priority <= 2; if none qualify, the first few features.
The MVP is never empty when features exist.
"""

from typing import List, Optional

from pydantic import Field

from .base_agent import DecisionModel, GenerativeDecisionUnit, join_list, parse_array

MVP_MAX_PRIORITY = 2


class FeatureSpec(DecisionModel):
    name: str = Field(min_length=1)
    description: str = ""
    # 1 (highest) .. 5
    priority: int = 3
    estimated_hours: Optional[float] = None


class FeaturePlanInput(DecisionModel):
    project_id: str
    description: str
    goals: List[str] = Field(default_factory=list)


class FeaturePlan(DecisionModel):
    features: List[FeatureSpec]
    mvp_features: List[FeatureSpec]


BASE_FEATURES = [
    FeatureSpec(name="Authentication", description="Email/password sign-up and login", priority=1, estimated_hours=16),
    FeatureSpec(name="Dashboard", description="Main home view and navigation for the user", priority=1, estimated_hours=24),
    FeatureSpec(name="Profile Management", description="View and edit user profile information", priority=2, estimated_hours=12),
    FeatureSpec(name="Settings", description="Application settings and preferences", priority=3, estimated_hours=8),
]

KEYWORD_FEATURES = [
    (("social", "share"), FeatureSpec(
        name="Content Sharing", description="Users share and browse content", priority=1, estimated_hours=32)),
    (("message", "chat"), FeatureSpec(
        name="Messaging", description="Chat messaging between users", priority=2, estimated_hours=40)),
    (("payment", "purchase"), FeatureSpec(
        name="Payment System", description="Secure payment integration", priority=1, estimated_hours=48)),
]


def select_mvp(features: List[FeatureSpec], fallback_count: int) -> List[FeatureSpec]:
    mvp = [f for f in features if f.priority <= MVP_MAX_PRIORITY]
    return mvp or features[:fallback_count]


class ProductAgent(GenerativeDecisionUnit[FeaturePlanInput, FeaturePlan]):
    name = "Product Agent"

    def describe(self, data: FeaturePlanInput) -> str:
        return f"Breaking down features for project: {data.project_id}"

    def build_prompt(self, data: FeaturePlanInput) -> str:
        return (
            "As a product manager, create the feature list for this project:\n\n"
            f"Project description: {data.description}\n"
            f"Goals: {join_list(data.goals)}\n\n"
            "In a casual-professional tone:\n"
            "1. List all features (name, description, priority 1-5 each)\n"
            "2. Mark the minimum features needed for the MVP with priority 1-2\n\n"
            'Format: JSON array [{"name": "...", "description": "...", "priority": 1-5, '
            '"estimatedHours": 16}]'
        )

    def parse_response(self, text: str, data: FeaturePlanInput) -> FeaturePlan:
        features = parse_array(text, FeatureSpec)
        if not features:
            raise ValueError("empty feature list")
        return FeaturePlan(features=features, mvp_features=select_mvp(features, 3))

    def fallback(self, data: FeaturePlanInput) -> FeaturePlan:
        features = [f.model_copy() for f in BASE_FEATURES]
        description = data.description.lower()
        for keywords, feature in KEYWORD_FEATURES:
            if any(k in description for k in keywords):
                features.append(feature.model_copy())
        return FeaturePlan(features=features, mvp_features=select_mvp(features, 2))
