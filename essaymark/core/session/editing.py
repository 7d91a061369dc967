"""
Merging and splitting students.

Scans are often imported one page per student; these helpers join or
split scripts and shift annotation page indices to match.
"""
import logging
from dataclasses import replace
from typing import Optional

from essaymark.core.annotations.models import StudentScore
from .models import GradingSession, Student, empty_justifications, new_id

logger = logging.getLogger(__name__)


def _join(first: Student, second: Student) -> Student:
    offset = len(first.images)
    moved = [replace(ann, page_index=ann.page_index + offset) for ann in second.annotations]
    return replace(
        first,
        images=first.images + second.images,
        annotations=first.annotations + moved,
        time_spent=first.time_spent + second.time_spent
    )


def merge_next(session: GradingSession, index: int) -> bool:
    """
    Append the following student's pages to the student at ``index``.

    Returns:
        True if the students were merged
    """
    if not 0 <= index < len(session.students) - 1:
        return False
    first, second = session.students[index], session.students[index + 1]
    session.students[index] = _join(first, second)
    del session.students[index + 1]
    logger.info("Merged %s into %s", second.name, first.name)
    return True


def merge_with_previous(session: GradingSession, index: int) -> Optional[int]:
    """
    Append the student at ``index`` to the previous student.

    Returns:
        Page index in the merged student where the moved pages start,
        or None if there is no previous student
    """
    if not 0 < index < len(session.students):
        return None
    first_page = len(session.students[index - 1].images)
    if not merge_next(session, index - 1):
        return None
    return first_page


def split_at_page(session: GradingSession, index: int, page_index: int) -> bool:
    """
    Move pages from ``page_index`` on into a new student inserted after ``index``.

    The new student starts with blank scores and no time spent.

    Returns:
        True if the student was split
    """
    student = session.student(index)
    if student is None or not 0 < page_index < len(student.images):
        return False

    kept = [a for a in student.annotations if a.page_index < page_index]
    moved = [replace(a, page_index=a.page_index - page_index)
             for a in student.annotations if a.page_index >= page_index]

    part_two = Student(
        id=new_id(),
        name=f"{student.name} (Part 2)",
        images=student.images[page_index:],
        annotations=moved,
        scores=StudentScore(),
        justifications=empty_justifications(),
        time_spent=0
    )
    session.students[index] = replace(student, images=student.images[:page_index], annotations=kept)
    session.students.insert(index + 1, part_two)
    logger.info("Split %s at page %d", student.name, page_index + 1)
    return True
