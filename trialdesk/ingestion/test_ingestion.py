import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from trialdesk.ingestion.job import run_ingestion
from trialdesk.models import IngestionRun, Teacher, TeacherAvailability, TeacherStatus

SEED_BUCKET = Path(__file__).resolve().parents[2] / "data" / "bucket"


def _bucket(tmp_path, teachers, availability):
    (tmp_path / "teachers.json").write_text(json.dumps(teachers))
    (tmp_path / "availability.json").write_text(json.dumps(availability))
    return str(tmp_path)


def test_seed_bucket_loads(db):
    result = run_ingestion(db, bucket_dir=str(SEED_BUCKET))

    assert result["status"] == "success"
    assert db.query(Teacher).count() == 5
    assert db.get(Teacher, "T005").status is TeacherStatus.PENDING
    assert db.query(TeacherAvailability).count() == 9
    slot = db.query(TeacherAvailability).filter_by(teacher_id="T001").order_by(
        TeacherAvailability.time_slot).first()
    assert slot.time_slot == "10:30:00"


def test_second_run_is_skipped(db):
    first = run_ingestion(db, bucket_dir=str(SEED_BUCKET))
    second = run_ingestion(db, bucket_dir=str(SEED_BUCKET))
    assert second["status"] == "skipped"
    assert second["hash"] == first["hash"]
    assert db.query(TeacherAvailability).count() == 9


def test_forced_run_reports_unchanged(db):
    run_ingestion(db, bucket_dir=str(SEED_BUCKET))
    again = run_ingestion(db, force=True, bucket_dir=str(SEED_BUCKET))
    assert again["status"] == "success"
    assert again["diff"]["teachers"]["updated"] == []
    assert len(again["diff"]["availability"]["unchanged"]) == 9


def test_booked_records_are_untouched(db, tmp_path):
    teachers = [{"id": "T1", "full_name": "Amira Hassan", "teacher_type": "kids"}]
    bucket = _bucket(tmp_path, teachers,
                     [{"teacher_id": "T1", "date": "2025-06-24", "time_slot": "16:00"}])
    run_ingestion(db, bucket_dir=bucket)

    record = db.query(TeacherAvailability).one()
    record.is_booked = True
    db.commit()

    (tmp_path / "availability.json").write_text(json.dumps(
        [{"teacher_id": "T1", "date": "2025-06-24", "time_slot": "16:00", "is_available": False}]
    ))
    result = run_ingestion(db, bucket_dir=bucket)

    assert result["diff"]["availability"]["skipped_booked"] == ["T1@2025-06-24T16:00:00"]
    db.expire_all()
    record = db.query(TeacherAvailability).one()
    assert record.is_booked and record.is_available


def test_changed_teacher_is_updated(db, tmp_path):
    bucket = _bucket(tmp_path, [{"id": "T1", "full_name": "Amira", "teacher_type": "kids"}], [])
    run_ingestion(db, bucket_dir=bucket)
    (tmp_path / "teachers.json").write_text(json.dumps(
        [{"id": "T1", "full_name": "Amira Hassan", "teacher_type": "kids"}]
    ))
    result = run_ingestion(db, bucket_dir=bucket)
    assert result["diff"]["teachers"]["updated"] == ["T1"]
    assert db.get(Teacher, "T1").full_name == "Amira Hassan"


@pytest.mark.parametrize("bad", ["16:15", "24:00", "16", "late"])
def test_off_grid_slot_fails_the_run(db, tmp_path, bad):
    bucket = _bucket(tmp_path, [{"id": "T1", "full_name": "Amira", "teacher_type": "kids"}],
                     [{"teacher_id": "T1", "date": "2025-06-24", "time_slot": bad}])
    with pytest.raises(ValidationError):
        run_ingestion(db, bucket_dir=bucket)

    assert db.query(Teacher).count() == 0
    run = db.query(IngestionRun).one()
    assert run.status == "failed"


def test_missing_bucket_raises(db, tmp_path):
    with pytest.raises(FileNotFoundError):
        run_ingestion(db, bucket_dir=str(tmp_path / "nope"))


def test_first_run_reports_added(db):
    result = run_ingestion(db, bucket_dir=str(SEED_BUCKET))
    assert len(result["diff"]["teachers"]["added"]) == 5
    assert len(result["diff"]["availability"]["added"]) == 9
    assert db.query(IngestionRun).one().diff_summary == result["diff"]


def test_bucket_without_availability_file(db, tmp_path):
    (tmp_path / "teachers.json").write_text(json.dumps(
        [{"id": "T1", "full_name": "Amira", "teacher_type": "kids"}]
    ))
    result = run_ingestion(db, bucket_dir=str(tmp_path))
    assert result["diff"]["availability"]["added"] == []
    assert db.query(Teacher).count() == 1
