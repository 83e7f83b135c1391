"""Confidence-buffered forecasting and hierarchy rollups.

A confidence level inflates a raw estimate (in days) by a percentage buffer:

    forecasted = ceil(raw * (1 + pct / 100))

Forecasts always round up so effort is never under-forecast.
"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = ("high", "medium", "low")

# Fallback for every optional confidence level (phases, Jira items, settings)
DEFAULT_CONFIDENCE_LEVEL = "medium"

DEFAULT_CONFIDENCE_SETTINGS = {
    "high": 5,
    "medium": 15,
    "low": 25,
    "defaultLevel": DEFAULT_CONFIDENCE_LEVEL,
}


def confidence_settings(overrides: Optional[dict] = None) -> dict:
    """Merge configured confidence percentages over the defaults."""
    merged = dict(DEFAULT_CONFIDENCE_SETTINGS)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def _level_key(level):
    return level.strip().lower() if isinstance(level, str) else level


def normalize_confidence_level(level, default: Optional[str] = None) -> str:
    """Return level if it is a known confidence level, else the default.

    Matching ignores case and surrounding whitespace, so "Medium" is "medium".
    """
    if _level_key(level) in CONFIDENCE_LEVELS:
        return _level_key(level)

    fallback = _level_key(default)
    if fallback not in CONFIDENCE_LEVELS:
        fallback = DEFAULT_CONFIDENCE_LEVEL
    if level is not None:
        logger.debug(f"Unknown confidence level {level!r}, using {fallback}")
    return fallback


def default_confidence_level(settings: Optional[dict] = None) -> str:
    """The configured default level (settings["defaultLevel"])."""
    return normalize_confidence_level(confidence_settings(settings).get("defaultLevel"))


def confidence_buffer(level, settings: Optional[dict] = None) -> float:
    """Buffer fraction for a level, e.g. 0.15 for medium at 15%."""
    configured = confidence_settings(settings)
    level = normalize_confidence_level(level, configured.get("defaultLevel"))
    return configured[level] / 100


def confidence_label(level, settings: Optional[dict] = None) -> str:
    """Display label such as "Medium (+15%)"."""
    configured = confidence_settings(settings)
    level = normalize_confidence_level(level, configured.get("defaultLevel"))
    return f"{level.capitalize()} (+{configured[level]}%)"


def forecasted_days(raw_days, level, settings: Optional[dict] = None) -> int:
    """Forecast raw days at a confidence level, rounding up."""
    raw = max(raw_days or 0, 0)
    # Strip float noise first: 20 * 1.05 == 21.000000000000004
    return math.ceil(round(raw * (1 + confidence_buffer(level, settings)), 9))


def raw_days(item: dict, default_days_per_item: float = 0) -> float:
    """Raw days for a work item: story points are days (1 SP = 1 day)."""
    points = item.get("storyPoints")
    if not isinstance(points, (int, float)) or isinstance(points, bool):
        return default_days_per_item
    return max(points, 0)


def compute_rollup(items: list, default_level: Optional[str] = None,
                   settings: Optional[dict] = None,
                   default_days_per_item: float = 0) -> dict:
    """Roll estimates up a parentKey forest (story -> feature -> epic).

    Leaves contribute their own story points, forecast at their own
    confidence level (or default_level). Items with children contribute
    only the sum of their children; their own story points are ignored.

    Args:
        items: Work item dicts with jiraKey, parentKey, storyPoints,
            confidenceLevel
        default_level: Level for leaves without one
        settings: Confidence settings (percentages)
        default_days_per_item: Raw days for leaves with no story points

    Returns:
        Dict mapping jiraKey -> {rawDays, forecastedDays, itemCount} for
        every item. Callers normally read only the non-leaf rows.
    """
    default_level = normalize_confidence_level(
        default_level, default_confidence_level(settings)
    )

    # Dense index per unique key; first occurrence wins
    index_of = {}
    nodes = []
    for item in items:
        key = item.get("jiraKey")
        if key is None or key in index_of:
            continue
        index_of[key] = len(nodes)
        nodes.append(item)

    children = [[] for _ in nodes]
    for idx, item in enumerate(nodes):
        parent_idx = index_of.get(item.get("parentKey"))
        if parent_idx is not None and parent_idx != idx:
            children[parent_idx].append(idx)

    results = [None] * len(nodes)
    on_path = [False] * len(nodes)

    for root in range(len(nodes)):
        if results[root] is not None:
            continue

        # Iterative post-order: (index, children_pushed)
        stack = [(root, False)]
        while stack:
            idx, expanded = stack.pop()
            if results[idx] is not None:
                continue

            if not expanded:
                on_path[idx] = True
                stack.append((idx, True))
                for child in children[idx]:
                    if results[child] is None and not on_path[child]:
                        stack.append((child, False))
                continue

            on_path[idx] = False
            item = nodes[idx]
            if not children[idx]:
                raw = raw_days(item, default_days_per_item)
                level = normalize_confidence_level(item.get("confidenceLevel"), default_level)
                results[idx] = {
                    "rawDays": raw,
                    "forecastedDays": forecasted_days(raw, level, settings),
                    "itemCount": 1,
                }
                continue

            total_raw = 0
            total_forecast = 0
            total_count = 0
            for child in children[idx]:
                # A child still unresolved here closes a parentKey cycle
                child_result = results[child]
                if child_result is None:
                    continue
                total_raw += child_result["rawDays"]
                total_forecast += child_result["forecastedDays"]
                total_count += child_result["itemCount"]

            results[idx] = {
                "rawDays": total_raw,
                "forecastedDays": total_forecast,
                "itemCount": total_count,
            }

    return {nodes[idx].get("jiraKey"): result for idx, result in enumerate(results)}
