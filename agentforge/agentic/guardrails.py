"""Input and output guardrails.

Rules are stored on the agent as ``GuardrailConfig`` and checked by the turn
engine: input rules against the user message before the first model call,
output rules against the final answer.

    {"type": "max_length", "config": {"max": 2000}}
    {"type": "blocked_terms", "config": {"terms": ["password"], "case_sensitive": false}}
    {"type": "regex", "config": {"pattern": "^\\\\{", "mode": "require"}}

Unknown rule types are skipped with a warning.
"""

import re
from typing import Callable

from loguru import logger

from agentforge.errors import GuardrailViolation
from agentforge.models.config import GuardrailConfig, GuardrailRule


def _max_length(text: str, rule: GuardrailRule, stage: str) -> None:
    limit = rule.config.get("max", rule.config.get("max_length"))
    if limit is not None and len(text) > int(limit):
        raise GuardrailViolation(
            f"{stage.capitalize()} exceeds maximum length of {limit} characters",
            stage=stage,
            rule=rule.type,
        )


def _blocked_terms(text: str, rule: GuardrailRule, stage: str) -> None:
    case_sensitive = bool(rule.config.get("case_sensitive", False))
    haystack = text if case_sensitive else text.lower()
    for term in rule.config.get("terms", []):
        needle = term if case_sensitive else str(term).lower()
        if needle and needle in haystack:
            raise GuardrailViolation(
                f"{stage.capitalize()} contains blocked term: {term}",
                stage=stage,
                rule=rule.type,
            )


def _regex(text: str, rule: GuardrailRule, stage: str) -> None:
    pattern = rule.config.get("pattern")
    if not pattern:
        return
    found = re.search(pattern, text) is not None
    mode = rule.config.get("mode", "block")
    if mode == "block" and found:
        raise GuardrailViolation(
            f"{stage.capitalize()} matches blocked pattern", stage=stage, rule=rule.type
        )
    if mode == "require" and not found:
        raise GuardrailViolation(
            f"{stage.capitalize()} does not match required pattern", stage=stage, rule=rule.type
        )


GUARDRAIL_CHECKS: dict[str, Callable[[str, GuardrailRule, str], None]] = {
    "max_length": _max_length,
    "blocked_terms": _blocked_terms,
    "regex": _regex,
}


def check_guardrails(text: str, config: GuardrailConfig | None, stage: str) -> None:
    """Raise GuardrailViolation on the first rule ``text`` breaks."""
    if config is None:
        return
    for rule in config.rules:
        check = GUARDRAIL_CHECKS.get(rule.type)
        if check is None:
            logger.warning(f"Unknown {stage} guardrail type '{rule.type}', skipping")
            continue
        check(text, rule, stage)
