"""
plugin_search.py
================

Tiered similarity ranking for the plugin catalog.

Scores are bucketed into tiers; a higher tier always outscores a lower one,
whatever the within-tier bonuses are:

1. exact match (case-insensitive)
2. exact match once all whitespace is removed ("anti ed" vs "antied")
3. candidate starts with the query
4. query starts a word inside the candidate
5. query is a substring, plus position and length bonuses
6. Levenshtein fallback, rejected below a similarity floor

Everything here is pure and synchronous.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any, Iterable, List, Mapping

from shiggybot.datatypes.plugin_datatypes import PluginRecord, ScoredMatch

DEFAULT_SCORE_THRESHOLD: float = 6.0

_WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Tier constants of the similarity scorer.

    The numbers are tunable; construction only enforces that the tiers stay
    strictly ordered. The best possible substring score is
    ``substring_base + position_weight + length_weight`` and must not reach
    the word-boundary tier, and the fuzzy band (at most ``fuzzy_scale``) must
    stay below the lowest substring score, ``substring_base``.
    """

    exact: float = 10.0
    exact_ignoring_whitespace: float = 9.5
    prefix: float = 9.0
    word_boundary: float = 8.5
    substring_base: float = 7.0
    position_weight: float = 0.7
    position_decay: float = 0.3
    length_weight: float = 0.7
    fuzzy_scale: float = 5.0
    rejection_threshold: float = 0.6

    def __post_init__(self) -> None:
        if not self.exact > self.exact_ignoring_whitespace > self.prefix > self.word_boundary:
            raise ValueError("fixed tier scores must be strictly decreasing")
        if self.substring_base + self.position_weight + self.length_weight >= self.word_boundary:
            raise ValueError("substring tier can reach the word-boundary tier")
        if self.fuzzy_scale >= self.substring_base:
            raise ValueError("fuzzy tier can reach the substring tier")
        if min(self.position_weight, self.length_weight, self.fuzzy_scale) < 0:
            raise ValueError("bonus weights must be non-negative")
        if not 0.0 <= self.position_decay <= 1.0:
            raise ValueError("position_decay must be within [0, 1]")
        if not 0.0 < self.rejection_threshold <= 1.0:
            raise ValueError("rejection_threshold must be within (0, 1]")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "ScoringWeights":
        """Build weights from a config mapping, ignoring unknown keys."""
        if not values:
            return cls()
        known = {field.name for field in fields(cls)}
        return cls(**{key: float(value) for key, value in values.items() if key in known})


DEFAULT_WEIGHTS = ScoringWeights()


def levenshtein_distance(first: str, second: str) -> int:
    """Return the edit distance between two strings.

    Insertions, deletions and substitutions each cost 1. Only two rows of the
    dynamic-programming table are kept, sized by the shorter string.
    """
    if first == second:
        return 0
    if len(first) < len(second):
        first, second = second, first
    if not second:
        return len(first)

    previous_row = list(range(len(second) + 1))
    for row_index, first_char in enumerate(first, start=1):
        current_row = [row_index]
        for column_index, second_char in enumerate(second, start=1):
            substitution_cost = 0 if first_char == second_char else 1
            current_row.append(min(
                previous_row[column_index] + 1,
                current_row[column_index - 1] + 1,
                previous_row[column_index - 1] + substitution_cost,
            ))
        previous_row = current_row
    return previous_row[-1]


def normalized_similarity(first: str, second: str) -> float:
    """Return ``1 - distance / longest_length`` (1.0 for two empty strings)."""
    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(first, second) / longest


def score_similarity(candidate_name: str, query: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Score how well ``query`` matches ``candidate_name``.

    Args:
        candidate_name: Catalog name to score.
        query: Free text typed by the user.
        weights: Tier constants to use.

    Returns:
        float: A non-negative score; ``0.0`` means no match. An empty or
        whitespace-only query always scores ``0.0``.
    """
    candidate = candidate_name.lower().strip()
    needle = query.lower().strip()
    if not needle or not candidate:
        return 0.0

    if candidate == needle:
        return weights.exact

    if _WHITESPACE_PATTERN.sub("", candidate) == _WHITESPACE_PATTERN.sub("", needle):
        return weights.exact_ignoring_whitespace

    if candidate.startswith(needle):
        return weights.prefix

    if re.search(r"\b" + re.escape(needle), candidate):
        return weights.word_boundary

    position = candidate.find(needle)
    if position != -1:
        position_bonus = weights.position_weight * (1.0 - weights.position_decay * position / len(candidate))
        length_bonus = weights.length_weight * len(needle) / len(candidate)
        return weights.substring_base + position_bonus + length_bonus

    similarity = normalized_similarity(candidate, needle)
    if similarity < weights.rejection_threshold:
        return 0.0
    return similarity * weights.fuzzy_scale


def search_plugins(
    catalog: Iterable[PluginRecord],
    query: str,
    threshold: float = DEFAULT_SCORE_THRESHOLD,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredMatch]:
    """Rank ``catalog`` against ``query``.

    Records scoring at least ``threshold`` are returned best first. The sort
    is stable, so records with equal scores keep their catalog order.
    """
    if not query or not query.strip():
        return []

    matches = [
        ScoredMatch(record=record, score=score_similarity(record.name, query, weights))
        for record in catalog
    ]
    kept = [match for match in matches if match.score > 0.0 and match.score >= threshold]
    return sorted(kept, key=lambda match: match.score, reverse=True)


def find_plugin_by_hash(catalog: Iterable[PluginRecord], short_hash: str) -> PluginRecord | None:
    """Return the record whose :attr:`PluginRecord.short_hash` equals ``short_hash``."""
    for record in catalog:
        if record.short_hash == short_hash:
            return record
    return None
