"""
Class statistics and the gradebook CSV.
"""
import csv
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from essaymark.core.annotations.codes import find_code
from essaymark.core.annotations.models import SCORED_MODES, GradingMode
from essaymark.core.session.models import Student

logger = logging.getLogger(__name__)

GRADEBOOK_HEADERS = ['Name', 'Content', 'Communicative', 'Organisation', 'Language', 'Total', 'Time (s)']

MAX_TOTAL = 20
TOP_ERROR_COUNT = 5


@dataclass
class ErrorFrequency:
    code: str
    count: int
    label: str
    mode: GradingMode


@dataclass
class ClassStats:
    average: float
    median: float
    average_time_seconds: float
    category_averages: Dict[GradingMode, float] = field(default_factory=dict)
    # distribution[t] = number of students whose rounded total is t
    distribution: List[int] = field(default_factory=list)
    top_errors: List[ErrorFrequency] = field(default_factory=list)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def class_stats(students: Sequence[Student]) -> Optional[ClassStats]:
    """
    Summarize scores, time and error codes over a class.

    Args:
        students: Students to include

    Returns:
        ClassStats, or None for an empty class
    """
    if not students:
        return None

    n = len(students)
    totals = [s.scores.total for s in students]

    distribution = [0] * (MAX_TOTAL + 1)
    for total in totals:
        distribution[min(MAX_TOTAL, max(0, _round_half_up(total)))] += 1

    error_counts = Counter(ann.code for s in students for ann in s.annotations if ann.code)
    top_errors = []
    # Ties keep first-seen order
    for code, count in sorted(error_counts.items(), key=lambda item: -item[1])[:TOP_ERROR_COUNT]:
        info = find_code(code)
        top_errors.append(ErrorFrequency(
            code=code,
            count=count,
            label=info.label if info else code,
            mode=info.mode if info else GradingMode.GENERAL
        ))

    return ClassStats(
        average=round(sum(totals) / n, 1),
        median=round(_median(totals), 1),
        average_time_seconds=sum(s.time_spent for s in students) / n,
        category_averages={
            mode: round(sum(s.scores.get(mode) for s in students) / n, 1) for mode in SCORED_MODES
        },
        distribution=distribution,
        top_errors=top_errors
    )


def gradebook_filename(session_name: str) -> str:
    stem = re.sub(r'\s+', '_', session_name)
    return f"{stem}_Gradebook.csv"


def write_gradebook_csv(students: Sequence[Student], path: str) -> bool:
    """
    Write one row of scores per student.

    Returns:
        True if the file was written
    """
    try:
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(GRADEBOOK_HEADERS)
            for s in students:
                scores = s.scores
                writer.writerow([
                    s.name,
                    scores.content,
                    scores.communicative,
                    scores.organisation,
                    scores.language,
                    scores.total,
                    int(round(s.time_spent))
                ])
        return True
    except OSError as e:
        logger.error("Failed to write gradebook %s: %s", path, e)
        return False
