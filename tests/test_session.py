import json

from essaymark.core.annotations.models import (
    Annotation,
    AnnotationType,
    GradingMode,
    StampData,
    StudentScore
)
from essaymark.core.geometry import Rect
from essaymark.core.session import (
    GradingSession,
    SessionPersistence,
    Student,
    merge_next,
    merge_with_previous,
    split_at_page
)


def _annotation(annotation_id, page):
    return Annotation(
        id=annotation_id,
        mode=GradingMode.LANGUAGE,
        page_index=page,
        annotation_type=AnnotationType.RECT,
        rects=[Rect(0.1, 0.1, 0.2, 0.05)],
        code='SP'
    )


def _student(name, pages, annotations=(), time_spent=0):
    return Student(
        id=name.lower(),
        name=name,
        images=[f"{name}_{i}.png" for i in range(pages)],
        annotations=list(annotations),
        scores=StudentScore(content=3),
        time_spent=time_spent
    )


def _session():
    return GradingSession(
        id='abc',
        name='Mock exam',
        students=[
            _student('Ana', 2, [_annotation('1', 1)], time_spent=60),
            _student('Ben', 1, [_annotation('2', 0)], time_spent=30),
            _student('Cy', 1),
        ]
    )


def test_merge_next_offsets_pages():
    session = _session()
    assert merge_next(session, 0)
    merged = session.students[0]
    assert len(session.students) == 2
    assert merged.images == ['Ana_0.png', 'Ana_1.png', 'Ben_0.png']
    assert [(a.id, a.page_index) for a in merged.annotations] == [('1', 1), ('2', 2)]
    assert merged.time_spent == 90
    assert not merge_next(session, 1)


def test_merge_with_previous_keeps_both_annotation_lists():
    session = _session()
    assert merge_with_previous(session, 1) == 2
    merged = session.students[0]
    assert {a.id for a in merged.annotations} == {'1', '2'}
    assert merge_with_previous(session, 0) is None


def test_split_moves_later_pages():
    session = _session()
    assert split_at_page(session, 0, 1)
    first, second = session.students[0], session.students[1]
    assert first.images == ['Ana_0.png']
    assert first.annotations == []
    assert second.name == 'Ana (Part 2)'
    assert second.images == ['Ana_1.png']
    assert [(a.id, a.page_index) for a in second.annotations] == [('1', 0)]
    assert second.scores == StudentScore()
    assert not split_at_page(session, 0, 0)
    assert not split_at_page(session, 0, 5)


def test_session_json_uses_camel_case_keys():
    session = _session()
    data = session.to_dict()
    assert data['graderName'] == 'Teacher'
    assert data['students'][0]['timeSpent'] == 60
    assert data['students'][0]['annotations'][0]['pageIndex'] == 1
    assert GradingSession.from_dict(json.loads(json.dumps(data))) == session


def test_stamp_survives_save_and_load(tmp_path):
    session = _session()
    stamp = Annotation(
        id='9',
        mode=GradingMode.STAMPER,
        page_index=0,
        annotation_type=AnnotationType.STAMP,
        x=0.1,
        y=0.8,
        stamp_data=StampData(StudentScore(content=3), 3, 'Ms Smith', '19 Oct 2026')
    )
    session.students[2].annotations.append(stamp)

    persistence = SessionPersistence(str(tmp_path / 'sessions'), str(tmp_path / 'cache'))
    assert persistence.save_session(session)
    assert persistence.has_session('abc')
    loaded = persistence.load_session('abc')
    assert loaded.students[2].annotations[0].stamp_data == stamp.stamp_data


def test_missing_or_corrupt_session_loads_as_none(tmp_path):
    persistence = SessionPersistence(str(tmp_path / 'sessions'), str(tmp_path / 'cache'))
    assert persistence.load_session('nope') is None
    persistence.get_session_path('broken').write_text('{not json', encoding='utf-8')
    assert persistence.load_session('broken') is None
    assert persistence.list_sessions() == []


def test_list_delete_and_storage_stats(tmp_path):
    persistence = SessionPersistence(str(tmp_path / 'sessions'), str(tmp_path / 'cache'))
    older = GradingSession(id='old', name='Old', created_at='2026-01-01T00:00:00')
    newer = GradingSession(id='new', name='New', created_at='2026-10-01T00:00:00')
    persistence.save_session(older)
    persistence.save_session(newer)
    assert [s.id for s in persistence.list_sessions()] == ['new', 'old']

    (persistence.cache_dir / 'old-student-0.png').write_bytes(b'12345')
    (persistence.cache_dir / 'new-student-0.png').write_bytes(b'123')
    stats = persistence.storage_stats()
    assert stats.session_count == 2
    assert stats.cache_bytes == 8
    assert stats.total_bytes == stats.session_bytes + 8

    assert persistence.delete_session('old')
    assert not persistence.has_session('old')
    assert not (persistence.cache_dir / 'old-student-0.png').exists()
    assert (persistence.cache_dir / 'new-student-0.png').exists()
    assert persistence.delete_session('old')
