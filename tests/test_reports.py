import csv

from essaymark.core.annotations.models import Annotation, AnnotationType, GradingMode, StudentScore
from essaymark.core.export import class_stats, gradebook_filename, write_gradebook_csv
from essaymark.core.export.reports import GRADEBOOK_HEADERS
from essaymark.core.session import Student


def _coded(annotation_id, code):
    return Annotation(
        id=annotation_id,
        mode=GradingMode.LANGUAGE,
        page_index=0,
        annotation_type=AnnotationType.RECT,
        code=code
    )


def _students():
    return [
        Student(id='a', name='Ana', scores=StudentScore(4, 4, 4, 4), time_spent=120,
                annotations=[_coded('1', 'SP'), _coded('2', 'SP'), _coded('3', 'ART')]),
        Student(id='b', name='Ben', scores=StudentScore(2, 3, 2, 3.5), time_spent=60,
                annotations=[_coded('4', 'SP'), _coded('5', 'XYZ')]),
        Student(id='c', name='Cy', scores=StudentScore(5, 5, 5, 5), time_spent=0),
    ]


def test_class_stats():
    stats = class_stats(_students())
    assert stats.average == 15.5
    assert stats.median == 16
    assert stats.average_time_seconds == 60
    assert stats.category_averages[GradingMode.CONTENT] == 3.7
    assert len(stats.distribution) == 21
    assert stats.distribution[16] == 1 and stats.distribution[11] == 1 and stats.distribution[20] == 1

    codes = [(e.code, e.count) for e in stats.top_errors]
    assert codes == [('SP', 3), ('ART', 1), ('XYZ', 1)]
    assert stats.top_errors[0].label == 'Spelling'
    assert stats.top_errors[2].mode == GradingMode.GENERAL


def test_empty_class_has_no_stats():
    assert class_stats([]) is None


def test_gradebook_filename():
    assert gradebook_filename('Mock  exam 2') == 'Mock_exam_2_Gradebook.csv'


def test_write_gradebook(tmp_path):
    path = tmp_path / 'grades.csv'
    assert write_gradebook_csv(_students(), str(path))
    with open(path, newline='', encoding='utf-8') as f:
        rows = list(csv.reader(f))
    assert rows[0] == GRADEBOOK_HEADERS
    assert rows[2] == ['Ben', '2', '3', '2', '3.5', '10.5', '60']
    assert len(rows) == 4


def test_write_gradebook_to_missing_directory_fails(tmp_path):
    assert not write_gradebook_csv(_students(), str(tmp_path / 'missing' / 'grades.csv'))
