"""
Derived dot labels.

Labels are never stored: dots sharing ``(mode, number)`` form a group,
ordered by numeric id. The first dot shows the bare number and the
following ones get ``a``, ``b``, ``c`` ... appended.
"""
from typing import Dict, Iterable, List, Tuple

from .models import Annotation, AnnotationType, GradingMode


def id_sort_key(annotation_id: str) -> Tuple[int, int, str]:
    """
    Sort key giving creation order for numeric ids.

    Non-numeric ids are not expected; they sort after numeric ones by
    string value instead of raising.
    """
    text = str(annotation_id)
    try:
        return (0, int(text), "")
    except ValueError:
        return (1, 0, text)


def _group_siblings(annotation: Annotation, annotations: Iterable[Annotation]) -> List[Annotation]:
    return sorted(
        (a for a in annotations
         if a.annotation_type == AnnotationType.DOT
         and a.mode == annotation.mode
         and a.number == annotation.number),
        key=lambda a: id_sort_key(a.id)
    )


def _suffix(position: int) -> str:
    # 1 -> a, 2 -> b, ..., 26 -> z, 27 -> aa
    letters = ""
    while position > 0:
        position, rem = divmod(position - 1, 26)
        letters = chr(ord('a') + rem) + letters
    return letters


def dot_label(annotation: Annotation, annotations: Iterable[Annotation]) -> str:
    """
    Label shown for a dot.

    Args:
        annotation: The dot to label
        annotations: All annotations of the same student

    Returns:
        "2", "2a", "2b", ... or "?" for an unnumbered dot
    """
    if not annotation.number:
        return "?" if annotation.number is None else str(annotation.number)

    siblings = _group_siblings(annotation, annotations)
    position = next((i for i, s in enumerate(siblings) if s.id == annotation.id), 0)
    if position <= 0:
        return str(annotation.number)
    return f"{annotation.number}{_suffix(position)}"


def dot_labels(annotations: Iterable[Annotation]) -> Dict[str, str]:
    """Labels for every dot in one pass, keyed by annotation id."""
    annotations = list(annotations)
    groups: Dict[Tuple[GradingMode, int], List[Annotation]] = {}
    labels: Dict[str, str] = {}

    for ann in annotations:
        if ann.annotation_type != AnnotationType.DOT:
            continue
        if not ann.number:
            labels[ann.id] = dot_label(ann, ())
            continue
        groups.setdefault((ann.mode, ann.number), []).append(ann)

    for (_, number), members in groups.items():
        members.sort(key=lambda a: id_sort_key(a.id))
        for position, ann in enumerate(members):
            labels[ann.id] = str(number) if position == 0 else f"{number}{_suffix(position)}"

    return labels


def max_dot_number(annotations: Iterable[Annotation], mode: GradingMode) -> int:
    numbers = [
        a.number or 0 for a in annotations
        if a.annotation_type == AnnotationType.DOT and a.mode == mode
    ]
    return max(numbers) if numbers else 0


def next_dot_number(annotations: Iterable[Annotation], mode: GradingMode, group: bool) -> int:
    """
    Number for a new dot in ``mode``.

    A plain click starts a new point (max + 1); a group click joins the most
    recent group (max, or 1 when there is no dot yet).
    """
    current = max_dot_number(annotations, mode)
    if group:
        return current or 1
    return current + 1
