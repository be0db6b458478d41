"""
Grouping and counting helpers behind the archive, overview and word-cloud
views. All functions are pure and accept empty input.
"""
import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from records import MOOD_LABELS, JournalEntry, parse_entry_date

MIN_FONT_SIZE = 1.0  # rem
MAX_FONT_SIZE = 6.0
MIN_FONT_WEIGHT = 300
MAX_FONT_WEIGHT = 900


# ---------- Weekly grouping ----------

def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    return day - timedelta(days=day.weekday())


def group_entries_by_week(entries: Iterable[JournalEntry]) -> Tuple[Dict[str, List[JournalEntry]], List[str]]:
    """
    Bucket entries by the Monday of their week.

    Returns ``(groups, sorted_weeks)`` where ``groups`` maps ``YYYY-MM-DD``
    week keys to entries in arrival order and ``sorted_weeks`` lists the
    keys most recent first.
    """
    groups: Dict[str, List[JournalEntry]] = {}
    for entry in entries:
        key = week_start(entry.day).isoformat()
        groups.setdefault(key, []).append(entry)
    # zero-padded ISO keys sort chronologically as strings
    sorted_weeks = sorted(groups, reverse=True)
    return groups, sorted_weeks


# ---------- Yearly mood counts ----------

def _in_year(entries: Iterable[JournalEntry], year: int) -> List[JournalEntry]:
    return [e for e in entries if parse_entry_date(e.date).year == year]


def _current_year(year: Optional[int]) -> int:
    return year if year is not None else datetime.now().year


def yearly_mood_counts(entries: Iterable[JournalEntry], year: Optional[int] = None) -> List[dict]:
    """Five chart rows, Awesome first, counting this year's entries per mood."""
    year = _current_year(year)
    counts = Counter(e.mood_score for e in _in_year(entries, year))
    rows = [
        {"score": score, "name": label, "count": counts.get(score, 0)}
        for score, label in MOOD_LABELS.items()
    ]
    rows.reverse()
    return rows


def yearly_mood_counts_by_user(
    entries: Iterable[JournalEntry],
    users: Iterable,
    year: Optional[int] = None,
) -> Tuple[List[dict], List[dict]]:
    """
    Stacked-chart variant of ``yearly_mood_counts``.

    Each row maps user display names to their count for that mood. The
    legend lists contributing users once, in order of first appearance.
    """
    year = _current_year(year)
    names = {u.id: u.name for u in users}

    legend: List[dict] = []
    seen = set()
    counts: Counter = Counter()
    for entry in _in_year(entries, year):
        name = names.get(entry.user_id, f"User {entry.user_id}")
        if entry.user_id not in seen:
            seen.add(entry.user_id)
            legend.append({"id": entry.user_id, "name": name})
        counts[(entry.mood_score, name)] += 1

    rows = []
    for score, label in MOOD_LABELS.items():
        row = {"score": score, "name": label}
        for user in legend:
            row[user["name"]] = counts.get((score, user["name"]), 0)
        rows.append(row)
    rows.reverse()
    return rows, legend


# ---------- Word cloud ----------

def _interpolate(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def _normalize_words(words) -> List[Tuple[str, int]]:
    pairs = []
    for item in words:
        if isinstance(item, dict):
            pairs.append((item.get("adjective") or item.get("word"), max(0, int(item["count"]))))
        else:
            word, count = item
            pairs.append((word, max(0, int(count))))
    return pairs


def word_cloud_sizes(
    words: Sequence,
    scale: str = "sqrt",
    min_size: float = MIN_FONT_SIZE,
    max_size: float = MAX_FONT_SIZE,
    min_weight: int = MIN_FONT_WEIGHT,
    max_weight: int = MAX_FONT_WEIGHT,
) -> List[dict]:
    """
    Font size (rem) and weight for each ranked ``(word, count)`` pair.

    ``scale="sqrt"`` compresses the range so the most frequent word does not
    dwarf the rest; ``scale="linear"`` maps counts directly. When every count
    is equal each word gets the midpoint size and weight.
    """
    if scale == "sqrt":
        transform = math.sqrt
    elif scale == "linear":
        def transform(x):
            return x
    else:
        raise ValueError(f"Unknown word cloud scale: {scale!r}")

    pairs = _normalize_words(words)
    if not pairs:
        return []

    counts = [c for _, c in pairs]
    low, high = transform(min(counts)), transform(max(counts))

    result = []
    for word, count in pairs:
        if low == high:
            size = (min_size + max_size) / 2
            weight = (min_weight + max_weight) / 2
        else:
            t = transform(count)
            size = _interpolate(t, low, high, min_size, max_size)
            weight = round(_interpolate(t, low, high, min_weight, max_weight) / 100) * 100
        result.append({
            "word": word,
            "count": count,
            "font_size": round(size, 3),
            "font_weight": int(weight),
        })
    return result
