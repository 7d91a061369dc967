"""
Grading session data model.
"""
import datetime
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from essaymark.core.annotations.models import SCORED_MODES, Annotation, StudentScore


def empty_justifications() -> Dict[str, str]:
    return {mode.value: '' for mode in SCORED_MODES}


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Student:
    """One student's script: page images, annotations and scores."""
    id: str
    name: str
    images: List[str] = field(default_factory=list)  # page image paths
    annotations: List[Annotation] = field(default_factory=list)
    scores: StudentScore = field(default_factory=StudentScore)
    justifications: Dict[str, str] = field(default_factory=empty_justifications)
    time_spent: float = 0  # seconds

    @property
    def page_count(self) -> int:
        return len(self.images)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'images': list(self.images),
            'annotations': [ann.to_dict() for ann in self.annotations],
            'scores': self.scores.to_dict(),
            'justifications': dict(self.justifications),
            'timeSpent': self.time_spent
        }

    @staticmethod
    def from_dict(data):
        justifications = empty_justifications()
        justifications.update(data.get('justifications') or {})
        return Student(
            id=str(data['id']),
            name=data.get('name', ''),
            images=list(data.get('images', [])),
            annotations=[Annotation.from_dict(a) for a in data.get('annotations', [])],
            scores=StudentScore.from_dict(data.get('scores')),
            justifications=justifications,
            time_spent=data.get('timeSpent', 0)
        )


@dataclass
class GradingSession:
    """A batch of scripts graded against one task."""
    id: str
    name: str
    grader_name: str = "Teacher"
    level: str = ''
    part: str = '1'
    task_description: str = ''
    students: List[Student] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.datetime.now().isoformat())
    last_student_index: int = 0
    last_image_index: int = 0

    def student(self, index: int) -> Optional[Student]:
        if 0 <= index < len(self.students):
            return self.students[index]
        return None

    def all_annotation_ids(self) -> List[str]:
        return [ann.id for s in self.students for ann in s.annotations]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'graderName': self.grader_name,
            'level': self.level,
            'part': self.part,
            'taskDescription': self.task_description,
            'students': [s.to_dict() for s in self.students],
            'createdAt': self.created_at,
            'lastStudentIndex': self.last_student_index,
            'lastImageIndex': self.last_image_index
        }

    @staticmethod
    def from_dict(data):
        return GradingSession(
            id=str(data['id']),
            name=data.get('name', ''),
            grader_name=data.get('graderName') or "Teacher",
            level=data.get('level', ''),
            part=str(data.get('part', '1')),
            task_description=data.get('taskDescription', ''),
            students=[Student.from_dict(s) for s in data.get('students', [])],
            created_at=data.get('createdAt', ''),
            last_student_index=data.get('lastStudentIndex', 0),
            last_image_index=data.get('lastImageIndex', 0)
        )
