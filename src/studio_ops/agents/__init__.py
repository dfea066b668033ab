"""
Studio Ops Decision Units.

Contains all unit implementations:
- DecisionUnit / GenerativeDecisionUnit: the protocol (base_agent)
- ClientAgent: brief refiner
- CEOAgent: project evaluator (approval + priority)
- ProductAgent: feature planner
- CTOAgent: architecture advisor
- PMAgent: task breakdown
- OpsAgent: standups, assignment, nudges, daily summary
- QAAgent: quality assessor
- ReleaseAgent: release-notes composer
- StandupSummaryAgent / WeeklySummaryAgent: report prose
"""

from .base_agent import DecisionModel, DecisionUnit, GenerativeDecisionUnit, extract_json
from .ceo_agent import CEOAgent, Evaluation, EvaluationInput, MarketInfo
from .client_agent import BriefInput, ClientAgent, ClientInfo, RefinedBrief
from .cto_agent import ArchitectureAdvice, ArchitectureInput, CTOAgent
from .ops_agent import OpsAction, OpsAgent, OpsInput, OpsOutput
from .pm_agent import PMAgent, TaskBreakdown, TaskBreakdownInput, break_down_feature
from .product_agent import FeaturePlan, FeaturePlanInput, FeatureSpec, ProductAgent
from .qa_agent import QAAgent, QualityInput, QualityReport
from .release_agent import ReleaseAgent, ReleaseInput, ReleaseNotes
from .summary_agent import StandupDigestInput, StandupSummaryAgent, WeeklyDigestInput, WeeklySummaryAgent

__all__ = [
    # Protocol
    "DecisionModel",
    "DecisionUnit",
    "GenerativeDecisionUnit",
    "extract_json",
    # Units
    "ClientAgent",
    "CEOAgent",
    "ProductAgent",
    "CTOAgent",
    "PMAgent",
    "OpsAgent",
    "QAAgent",
    "ReleaseAgent",
    "StandupSummaryAgent",
    "WeeklySummaryAgent",
    # Inputs / outputs
    "BriefInput",
    "ClientInfo",
    "RefinedBrief",
    "EvaluationInput",
    "MarketInfo",
    "Evaluation",
    "FeaturePlanInput",
    "FeatureSpec",
    "FeaturePlan",
    "ArchitectureInput",
    "ArchitectureAdvice",
    "TaskBreakdownInput",
    "TaskBreakdown",
    "break_down_feature",
    "OpsAction",
    "OpsInput",
    "OpsOutput",
    "QualityInput",
    "QualityReport",
    "ReleaseInput",
    "ReleaseNotes",
    "StandupDigestInput",
    "WeeklyDigestInput",
]
