"""
Decision Unit protocol.

A Decision Unit turns one structured input into one structured output.
Generative units follow a fixed two-phase algorithm:

1. Generative attempt (only with a Generation Client): build a prompt,
   call `generate`, extract the first balanced JSON value from the reply
   and validate it against the output model.
2. Deterministic fallback: fixed rules over the input. Must be total.

Any failure of phase 1 (no client, placeholder reply, malformed JSON,
missing fields, exceptions) is logged as a warning with its reason and
answered by phase 2. Callers never see a partial result.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel

from ..llm import GenerationClient, is_placeholder

logger = logging.getLogger(__name__)

InT = TypeVar("InT")
OutT = TypeVar("OutT")
ModelT = TypeVar("ModelT", bound=BaseModel)

_CLOSERS = {"{": "}", "[": "]"}


class DecisionModel(BaseModel):
    """Base for unit inputs/outputs; accepts camelCase keys from generated JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Parsing helpers
# =============================================================================


def extract_json(text: str, opener: str = "{") -> Optional[str]:
    """
    Return the first balanced JSON object ("{") or array ("[") in `text`.

    Brackets inside string literals are ignored. Returns None if no
    balanced value starts with `opener`.
    """
    closer = _CLOSERS[opener]
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from here on, try the next opener
        start = text.find(opener, start + 1)
    return None


def parse_object(text: str, model: Type[ModelT]) -> ModelT:
    """Parse the first JSON object in `text` as `model`. Raises ValueError."""
    raw = extract_json(text, "{")
    if raw is None:
        raise ValueError("no JSON object in response")
    return model.model_validate(json.loads(raw))


def parse_array(text: str, item_model: Type[ModelT]) -> List[ModelT]:
    """Parse the first JSON array in `text` as a list of `item_model`. Raises ValueError."""
    raw = extract_json(text, "[")
    if raw is None:
        raise ValueError("no JSON array in response")
    return TypeAdapter(List[item_model]).validate_python(json.loads(raw))


# =============================================================================
# Decision Units
# =============================================================================


class DecisionUnit(ABC, Generic[InT, OutT]):
    """A replaceable request/response step of a workflow."""

    name = "Decision Unit"

    @abstractmethod
    def run(self, data: InT) -> OutT:
        """Compute one complete output for `data` or raise."""


class GenerativeDecisionUnit(DecisionUnit[InT, OutT]):
    """
    Decision Unit with a generative primary path and a rule-based fallback.

    Subclasses implement:
        describe(data)        -> start log line
        build_prompt(data)    -> prompt text
        parse_response(text, data) -> output (raise ValueError if unusable)
        fallback(data)        -> output from fixed rules
    """

    temperature = 0.7

    def __init__(self, llm: Optional[GenerationClient] = None):
        self.llm = llm

    def describe(self, data: InT) -> str:
        return "running"

    def should_generate(self, data: InT) -> Optional[str]:
        """Reason to skip the generative attempt for `data`, or None."""
        return None

    @abstractmethod
    def build_prompt(self, data: InT) -> str:
        ...

    @abstractmethod
    def parse_response(self, text: str, data: InT) -> OutT:
        ...

    @abstractmethod
    def fallback(self, data: InT) -> OutT:
        ...

    def run(self, data: InT) -> OutT:
        logger.info(f"[{self.name}] {self.describe(data)}")

        reason = self._skip_reason(data)
        if reason is None:
            try:
                text = self.llm.generate(self.build_prompt(data), temperature=self.temperature)
                if is_placeholder(text):
                    raise ValueError("generation client returned a placeholder")
                return self.parse_response(text, data)
            except Exception as e:
                reason = f"generation failed: {e}"

        logger.warning(f"[{self.name}] {reason}, using rule-based logic")
        return self.fallback(data)

    def _skip_reason(self, data: InT) -> Optional[str]:
        if self.llm is None:
            return "no generation client configured"
        return self.should_generate(data)


def join_list(items: List[Any], empty: str = "Not specified") -> str:
    return ", ".join(str(i) for i in items) if items else empty
