"""
Annotation data model.
"""
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from essaymark.core.geometry import Point, Rect


class GradingMode(Enum):
    CONTENT = "content"
    COMMUNICATIVE = "communicative"
    ORGANISATION = "organisation"
    LANGUAGE = "language"
    GENERAL = "general"
    SELECT = "select"      # tool mode
    STAMPER = "stamper"    # tool mode

    @property
    def is_tool(self) -> bool:
        return self in (GradingMode.SELECT, GradingMode.STAMPER)


# Categories that carry a rubric score
SCORED_MODES = (
    GradingMode.CONTENT,
    GradingMode.COMMUNICATIVE,
    GradingMode.ORGANISATION,
    GradingMode.LANGUAGE,
)


class AnnotationType(Enum):
    DOT = "dot"
    RECT = "rect"
    STAMP = "stamp"


@dataclass(frozen=True)
class StudentScore:
    """Rubric scores for one student (0-5 per category)."""
    content: float = 0
    communicative: float = 0
    organisation: float = 0
    language: float = 0

    @property
    def total(self) -> float:
        return self.content + self.communicative + self.organisation + self.language

    def get(self, mode: GradingMode) -> float:
        return getattr(self, mode.value)

    def to_dict(self):
        return {
            'content': self.content,
            'communicative': self.communicative,
            'organisation': self.organisation,
            'language': self.language
        }

    @staticmethod
    def from_dict(data):
        data = data or {}
        return StudentScore(
            content=data.get('content', 0),
            communicative=data.get('communicative', 0),
            organisation=data.get('organisation', 0),
            language=data.get('language', 0)
        )


@dataclass(frozen=True)
class StampData:
    """Score snapshot printed by a stamp. Never follows later score edits."""
    scores: StudentScore
    total: float
    grader: str
    date: str

    def to_dict(self):
        return {
            'scores': self.scores.to_dict(),
            'total': self.total,
            'grader': self.grader,
            'date': self.date
        }

    @staticmethod
    def from_dict(data):
        return StampData(
            scores=StudentScore.from_dict(data.get('scores')),
            total=data.get('total', 0),
            grader=data.get('grader', ''),
            date=data.get('date', '')
        )


@dataclass
class Annotation:
    """A single mark on one page of a student's script."""
    id: str
    mode: GradingMode
    page_index: int  # 0-based page index
    annotation_type: AnnotationType

    # Dot and stamp position
    x: Optional[float] = None
    y: Optional[float] = None

    # Rect annotations (several areas for multi-line spans)
    rects: List[Rect] = field(default_factory=list)

    text: Optional[str] = None
    code: Optional[str] = None
    correction: Optional[str] = None

    # Dot sequence label
    number: Optional[int] = None
    is_elaboration: bool = False

    stamp_data: Optional[StampData] = None

    @property
    def point(self) -> Optional[Point]:
        if self.x is None or self.y is None:
            return None
        return Point(self.x, self.y)

    @property
    def is_point_like(self) -> bool:
        return self.annotation_type in (AnnotationType.DOT, AnnotationType.STAMP)

    def to_dict(self):
        """Convert annotation to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'mode': self.mode.value,
            'pageIndex': self.page_index,
            'type': self.annotation_type.value
        }

        if self.x is not None and self.y is not None:
            data['x'] = self.x
            data['y'] = self.y

        if self.annotation_type == AnnotationType.RECT:
            data['rects'] = [r.to_dict() for r in self.rects]

        for key in ('text', 'code', 'correction', 'number'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value

        if self.is_elaboration:
            data['isElaboration'] = True

        if self.stamp_data is not None:
            data['stampData'] = self.stamp_data.to_dict()

        return data

    @staticmethod
    def from_dict(data):
        """Create annotation from dictionary."""
        stamp = data.get('stampData')
        return Annotation(
            id=str(data['id']),
            mode=GradingMode(data['mode']),
            page_index=int(data['pageIndex']),
            annotation_type=AnnotationType(data['type']),
            x=data.get('x'),
            y=data.get('y'),
            rects=[Rect.from_dict(r) for r in data.get('rects', [])],
            text=data.get('text'),
            code=data.get('code'),
            correction=data.get('correction'),
            number=data.get('number'),
            is_elaboration=bool(data.get('isElaboration', False)),
            stamp_data=StampData.from_dict(stamp) if stamp else None
        )


class IdGenerator:
    """
    Produces strictly increasing numeric id strings.

    Ids start from wall-clock milliseconds so they stay ordered across
    sessions; creation order is recovered later by comparing them as
    integers (see ``labels.id_sort_key``).
    """

    def __init__(self, start: Optional[int] = None):
        self._last = start if start is not None else int(time.time() * 1000)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            self._last = max(self._last + 1, int(time.time() * 1000))
            return str(self._last)

    def seed_above(self, ids: Iterable[str]) -> None:
        """Make sure future ids sort after every numeric id in ``ids``."""
        numeric = [int(i) for i in ids if str(i).isdigit()]
        if numeric:
            with self._lock:
                self._last = max(self._last, max(numeric))
