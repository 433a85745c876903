"""Stored submissions.

A submission record keeps the raw answers (the source of truth) alongside
cached score fields. Per-area scores are embedded in the answers JSON under
a synthetic key so aggregates can be recomputed without rescoring.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from pydantic import BaseModel, Field

from .schema import AREA_SCORES_KEY, AnswerSet, CalculationResult

logger = logging.getLogger(__name__)

EMAIL_KEYS = ("QX2", "Q0_EMAIL")
GROUP_KEY = "Q0_GROUP"
NOT_PROVIDED = "not_provided"


class SubmissionNotFoundError(KeyError):
    """Raised when a submission id is not present in the store."""


class SubmissionRecord(BaseModel):
    """One stored submission."""
    id: str = Field(..., description="Store-assigned record id")
    answer_id: Optional[str] = Field(None, description="Respondent-supplied \"id\" answer, if any")
    timestamp: datetime
    email: str = NOT_PROVIDED
    group: str = NOT_PROVIDED
    level: str
    score: int = Field(..., description="Rounded total percent (cached)")
    version: str
    answers_json: str = Field(..., description="Answers plus embedded area scores, as JSON")


def build_record(
    result: CalculationResult,
    version: str,
    record_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SubmissionRecord:
    """Build a storage record from a calculation result."""
    answers = result.answers
    email = next((answers[k] for k in EMAIL_KEYS if answers.get(k)), NOT_PROVIDED)
    payload = {
        **answers,
        AREA_SCORES_KEY: {
            area: score.model_dump() for area, score in result.area_scores.items()
        },
    }
    return SubmissionRecord(
        id=record_id or f"{version}_{uuid.uuid4().hex[:12]}",
        answer_id=None if answers.get("id") is None else str(answers["id"]),
        timestamp=now or datetime.now(timezone.utc),
        email=str(email),
        group=str(answers.get(GROUP_KEY) or NOT_PROVIDED),
        level=result.level,
        score=result.total_percent,
        version=version,
        answers_json=json.dumps(payload, ensure_ascii=False),
    )


def load_answers_payload(record: SubmissionRecord) -> dict:
    """Parse the stored answers JSON, including the synthetic key."""
    try:
        payload = json.loads(record.answers_json or "{}")
    except json.JSONDecodeError:
        logger.warning("Failed to parse answers JSON for record %s", record.id)
        return {}
    if not isinstance(payload, dict):
        logger.warning("Answers JSON for record %s is not an object", record.id)
        return {}
    return payload


def answers_from_record(record: SubmissionRecord) -> AnswerSet:
    """Stored raw answers, without the synthetic area-scores key."""
    payload = load_answers_payload(record)
    payload.pop(AREA_SCORES_KEY, None)
    return payload


class SubmissionStore:
    """Append-only JSON Lines file of submission records."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def append(self, record: SubmissionRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(record.model_dump_json() + "\n")
        logger.info("Saved submission %s (version %s)", record.id, record.version)

    def __iter__(self) -> Iterator[SubmissionRecord]:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield SubmissionRecord.model_validate_json(line)
                except ValueError as e:
                    logger.warning("Skipping malformed submission at %s:%d: %s", self.path, line_no, e)

    def records(self) -> list[SubmissionRecord]:
        return list(self)

    def get(self, record_id: str) -> SubmissionRecord:
        for record in self:
            if record.id == record_id:
                return record
        raise SubmissionNotFoundError(record_id)
