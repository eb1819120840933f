"""Recover a JSON object from free-form inference-service output.

The analysis service is asked for bare JSON but regularly answers with
markdown fences, chatty prose around the payload, trailing commas, inline
comments, or a nested object that is never closed. ``extract`` runs an
ordered chain of parse strategies, cheapest and most trusting first, and
returns the first one that yields a JSON object.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from contract_health.core.errors import ContractHealthError

logger = logging.getLogger(__name__)

DEFAULT_EXCERPT_CHARS = 1000

_FENCED_BLOCK_RE = re.compile(r"```(?:json|JSON)?\s*(\{.*?\})\s*```", re.DOTALL)


@dataclass(frozen=True)
class NestingDefect:
    """A nested object the service tends to leave open.

    ``last_field`` is the final key written inside ``container``; when the
    next sibling key ``next_field`` follows it with no ``}`` in between, the
    container's closing brace is missing.
    """

    container: str
    last_field: str
    next_field: str


KNOWN_NESTING_DEFECTS: tuple[NestingDefect, ...] = (
    NestingDefect(container="health_dimensions", last_field="map", next_field="dimension_explanations"),
    NestingDefect(container="dimension_explanations", last_field="map", next_field="overall_recommendation"),
)


class ExtractionError(ContractHealthError):
    stage = "extraction"
    status_code = 502

    def __init__(self, message: str, *, parser_error: str, excerpt: str):
        super().__init__(f"{message} Parser error: {parser_error}. Text excerpt: {excerpt!r}")
        self.parser_error = parser_error
        self.excerpt = excerpt

    def details(self) -> dict[str, Any]:
        return {"parser_error": self.parser_error, "excerpt": self.excerpt}


class StrategyMiss(ValueError):
    """A strategy found nothing it could work on (no fence, no braces)."""


def _loads_object(text: str) -> dict[str, Any]:
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"top-level JSON value is {type(parsed).__name__}, expected object")
    return parsed


def repair_structure(text: str, defects: tuple[NestingDefect, ...] = KNOWN_NESTING_DEFECTS) -> str:
    """Close nested objects matching one of the known defect patterns."""
    repaired = text
    for defect in defects:
        container_at = repaired.find(f'"{defect.container}"')
        next_at = repaired.find(f'"{defect.next_field}"')
        if container_at == -1 or next_at == -1 or next_at < container_at:
            continue
        last_at = repaired.rfind(f'"{defect.last_field}"', container_at, next_at)
        if last_at == -1:
            continue
        between = repaired[last_at:next_at]
        if "}" in between:
            continue
        head = between.rstrip()
        if head.endswith(","):
            head = head[:-1].rstrip()
        repaired = f"{repaired[:last_at]}{head}\n}},\n{repaired[next_at:]}"
    return repaired


def _strip_comments(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    in_string = False
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif text.startswith("//", index):
            end = text.find("\n", index)
            index = length if end == -1 else end
            continue
        elif text.startswith("/*", index):
            end = text.find("*/", index + 2)
            index = length if end == -1 else end + 2
            continue
        out.append(char)
        index += 1
    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    index = 0
    length = len(text)
    in_string = False
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif char == ",":
            ahead = index + 1
            while ahead < length and text[ahead].isspace():
                ahead += 1
            if ahead < length and text[ahead] in "}]":
                index += 1
                continue
        out.append(char)
        index += 1
    return "".join(out)


def repair_cosmetics(text: str) -> str:
    """Strip comments and trailing commas outside string literals."""
    return _strip_trailing_commas(_strip_comments(text))


def _fenced_block(text: str) -> str:
    match = _FENCED_BLOCK_RE.search(text)
    if not match:
        raise StrategyMiss("no fenced JSON block found")
    return match.group(1)


def _brace_slice(text: str) -> str:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise StrategyMiss("no brace-delimited span found")
    return text[first : last + 1]


def direct_parse(text: str) -> dict[str, Any]:
    return _loads_object(text.strip())


def fenced_block_parse(text: str) -> dict[str, Any]:
    return _loads_object(_fenced_block(text))


def structural_repair_parse(text: str) -> dict[str, Any]:
    return _loads_object(repair_structure(_fenced_block(text)))


def cosmetic_repair_parse(text: str) -> dict[str, Any]:
    return _loads_object(repair_cosmetics(repair_structure(_fenced_block(text))))


def brace_scan_parse(text: str) -> dict[str, Any]:
    candidate = _brace_slice(text)
    try:
        return _loads_object(candidate)
    except ValueError:
        pass
    structural = repair_structure(candidate)
    try:
        return _loads_object(structural)
    except ValueError:
        pass
    return _loads_object(repair_cosmetics(structural))


Strategy = Callable[[str], dict[str, Any]]

STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("direct", direct_parse),
    ("fenced_block", fenced_block_parse),
    ("structural_repair", structural_repair_parse),
    ("cosmetic_repair", cosmetic_repair_parse),
    ("brace_scan", brace_scan_parse),
)


def extract(text: str, *, excerpt_chars: int = DEFAULT_EXCERPT_CHARS) -> dict[str, Any]:
    if not isinstance(text, str):
        raise ExtractionError(
            "Analysis output is not text.",
            parser_error=f"expected str, got {type(text).__name__}",
            excerpt="",
        )

    original_error: Exception | None = None
    for name, strategy in STRATEGIES:
        try:
            parsed = strategy(text)
        except ValueError as exc:
            if original_error is None:
                original_error = exc
            logger.debug("json_salvage_strategy_failed strategy=%s error=%s", name, exc)
            continue
        if name != "direct":
            logger.info("json_salvage_strategy_succeeded strategy=%s", name)
        return parsed

    excerpt = text[: max(0, excerpt_chars)]
    parser_error = str(original_error) if original_error else "empty input"
    logger.warning("json_salvage_failed error=%s excerpt=%r", parser_error, excerpt[:200])
    raise ExtractionError(
        "Unable to extract a JSON object from the analysis output.",
        parser_error=parser_error,
        excerpt=excerpt,
    )
