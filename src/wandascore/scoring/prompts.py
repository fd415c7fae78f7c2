"""Instruction templates sent with each factor query."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

RESPONSE_FORMAT = "Format your response as: SCORE: [number] DETAILS: [explanation]\n"


@dataclass(frozen=True)
class FactorPrompt:
    name: str
    instructions: str


FACTOR_PROMPTS: Dict[str, FactorPrompt] = {
    "bias": FactorPrompt(
        "bias",
        "Analyze the following wiki page content for bias. Rate it on a scale of 0-100 "
        "where 100 means completely neutral and unbiased, and 0 means extremely biased. "
        "Provide a brief explanation. " + RESPONSE_FORMAT,
    ),
    "llm_generated": FactorPrompt(
        "llm_generated",
        "Analyze if the following wiki page content appears to be AI/LLM-generated. "
        "Rate it on a scale of 0-100 where 100 means definitely human-written and original, "
        "and 0 means definitely AI-generated. Look for signs like repetitive patterns, "
        "generic phrasing, or lack of personal voice. " + RESPONSE_FORMAT,
    ),
    "language": FactorPrompt(
        "language",
        "Evaluate the language quality of the following wiki page content. "
        "Rate it on a scale of 0-100 where 100 means excellent, clear, professional language, "
        "and 0 means poor language quality. Consider clarity, vocabulary, and readability. " + RESPONSE_FORMAT,
    ),
    "grammar": FactorPrompt(
        "grammar",
        "Check the grammar and spelling of the following wiki page content. "
        "Rate it on a scale of 0-100 where 100 means perfect grammar with no errors, "
        "and 0 means numerous grammar and spelling errors. " + RESPONSE_FORMAT,
    ),
    "conciseness": FactorPrompt(
        "conciseness",
        "Evaluate the conciseness of the following wiki page content. "
        "Rate it on a scale of 0-100 where 100 means perfectly concise with no unnecessary verbosity, "
        "and 0 means extremely verbose and repetitive. " + RESPONSE_FORMAT,
    ),
}
