"""
Seed loader for teachers and their UTC availability.

The bucket is fingerprinted as a whole; a run whose fingerprint matches the
last successful run does nothing unless forced. Booked availability rows
are reported but never modified.
"""
import json
import hashlib
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from trialdesk.models import Teacher, TeacherAvailability, IngestionRun
from trialdesk.ingestion.schemas import TeacherSchema, AvailabilitySchema

logger = logging.getLogger(__name__)

BUCKET_DIR = Path("data/bucket")
TEACHERS_FILE = "teachers.json"
AVAILABILITY_FILE = "availability.json"


@dataclass
class SyncDiff:
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped_booked: list[str] = field(default_factory=list)


# ── Reading the bucket ────────────────────────────────────────────────────────

def _fingerprint(bucket: Path) -> str:
    digest = hashlib.md5()
    for path in sorted(p for p in bucket.iterdir() if p.is_file()):
        digest.update(path.name.encode())
        digest.update(path.read_bytes())
    return digest.hexdigest()


def _read_seed(bucket: Path, filename: str, schema: type[BaseModel]) -> list:
    """Validated records of one seed file; an absent file is an empty seed."""
    path = bucket / filename
    if not path.is_file():
        return []
    return [schema.model_validate(raw) for raw in json.loads(path.read_text())]


# ── Syncing ───────────────────────────────────────────────────────────────────

def _sync_teachers(db: Session, teachers: list[TeacherSchema]) -> SyncDiff:
    diff = SyncDiff()
    for seed in teachers:
        row = db.get(Teacher, seed.id)
        if row is None:
            db.add(Teacher(**seed.model_dump()))
            diff.added.append(seed.id)
            continue

        stale = [(k, v) for k, v in seed.model_dump().items() if getattr(row, k) != v]
        for k, v in stale:
            setattr(row, k, v)
        (diff.updated if stale else diff.unchanged).append(seed.id)

    # availability rows reference these ids
    db.flush()
    return diff


def _sync_availability(db: Session, slots: list[AvailabilitySchema]) -> SyncDiff:
    diff = SyncDiff()
    teacher_ids = {s.teacher_id for s in slots}
    existing = {
        (r.teacher_id, r.date, r.time_slot): r
        for r in db.query(TeacherAvailability)
        .filter(TeacherAvailability.teacher_id.in_(teacher_ids))
        .all()
    } if teacher_ids else {}

    for seed in slots:
        label = f"{seed.teacher_id}@{seed.date.isoformat()}T{seed.time_slot}"
        row = existing.get((seed.teacher_id, seed.date, seed.time_slot))
        if row is None:
            row = TeacherAvailability(**seed.model_dump(), is_booked=False)
            db.add(row)
            existing[seed.teacher_id, seed.date, seed.time_slot] = row
            diff.added.append(label)
        elif row.is_booked:
            diff.skipped_booked.append(label)
        elif row.is_available != seed.is_available:
            row.is_available = seed.is_available
            diff.updated.append(label)
        else:
            diff.unchanged.append(label)
    return diff


# ── Entry point ───────────────────────────────────────────────────────────────

def _last_successful_fingerprint(db: Session) -> Optional[str]:
    run = (
        db.query(IngestionRun)
        .filter(IngestionRun.status == "success")
        .order_by(IngestionRun.id.desc())
        .first()
    )
    return run.source_hash if run else None


def run_ingestion(db: Session, force: bool = False, bucket_dir: Optional[str] = None) -> dict:
    """
    Load the seed bucket. Returns {"status": "skipped", ...} when the bucket
    is unchanged since the last successful run and `force` is not set.
    Validation errors abort the whole run; the failure is recorded and the
    error re-raised.
    """
    bucket = Path(bucket_dir) if bucket_dir else BUCKET_DIR
    fingerprint = _fingerprint(bucket)

    if not force and _last_successful_fingerprint(db) == fingerprint:
        logger.info("seed bucket %s unchanged (%s), skipping", bucket, fingerprint)
        return {"status": "skipped", "reason": "bucket unchanged", "hash": fingerprint}

    try:
        summary = {
            "teachers": asdict(_sync_teachers(db, _read_seed(bucket, TEACHERS_FILE, TeacherSchema))),
            "availability": asdict(_sync_availability(
                db, _read_seed(bucket, AVAILABILITY_FILE, AvailabilitySchema))),
        }
        db.add(IngestionRun(source_hash=fingerprint, status="success", diff_summary=summary))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("seed load from %s failed", bucket)
        db.add(IngestionRun(source_hash=fingerprint, status="failed", diff_summary={"error": str(e)}))
        db.commit()
        raise

    logger.info("seed bucket %s loaded: %d teacher(s), %d slot(s) added",
                bucket, len(summary["teachers"]["added"]), len(summary["availability"]["added"]))
    return {"status": "success", "hash": fingerprint, "diff": summary}
