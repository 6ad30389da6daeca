"""Job, artifact and status-event records passed between SunoBot components."""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# The target site renders two variants per submission.
DEFAULT_VARIANT_COUNT = 2


class Status(str, Enum):
    """Tokens carried in the ``status`` field of every emitted event."""
    LOADING_CONFIG = "loading_config"
    INITIALIZING_BROWSER = "initializing_browser"
    AUTHENTICATING = "authenticating"
    LOGIN_STEP = "login_step"
    MANUAL_ACTION_REQUIRED = "manual_action_required"
    AUTHENTICATED = "authenticated"
    AUTH_FAILED = "auth_failed"
    BATCH_STARTED = "batch_started"
    JOB_STARTED = "job_started"
    CREATING_SONG = "creating_song"
    SONG_CREATED = "song_created"
    CREATION_FAILED = "creation_failed"
    CHALLENGE_PRESENTED = "challenge_presented"
    CHALLENGE_RESOLVED = "challenge_resolved"
    WAITING_FOR_COMPLETION = "waiting_for_completion"
    SONG_COMPLETED = "song_completed"
    COMPLETION_TIMEOUT = "completion_timeout"
    DOWNLOADING = "downloading"
    VARIANT_DOWNLOADED = "variant_downloaded"
    DOWNLOAD_COMPLETE = "download_complete"
    DOWNLOAD_FAILED = "download_failed"
    RATE_LIMITED = "rate_limited"
    JOB_FAILED = "job_failed"
    JOB_CANCELLED = "job_cancelled"
    ROUND_COMPLETE = "round_complete"
    COMPLETE = "complete"
    FAILED = "failed"
    STOPPED = "stopped"
    CLOSED = "closed"


class JobStatus(Enum):
    PENDING = "pending"
    SUBMITTING = "submitting"
    AWAITING_CHALLENGE = "awaiting_challenge"
    GENERATING = "generating"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"
    FAILED = "failed"
    RATE_LIMITED = "rate_limited"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_JOB_STATUSES


_TERMINAL_JOB_STATUSES = {
    JobStatus.COMPLETE, JobStatus.FAILED, JobStatus.RATE_LIMITED,
    JobStatus.TIMED_OUT, JobStatus.CANCELLED,
}


@dataclass(frozen=True)
class JobRequest:
    """One song to create.  Empty lyrics means instrumental."""
    style: str
    title: str = ""
    lyrics: str = ""
    variant_count: int = DEFAULT_VARIANT_COUNT

    def __post_init__(self):
        if not self.style or not self.style.strip():
            raise ValueError("style is required")
        if self.variant_count < 1:
            raise ValueError("variant_count must be at least 1")

    @property
    def instrumental(self) -> bool:
        return not self.lyrics.strip()

    @classmethod
    def from_dict(cls, data: dict) -> "JobRequest":
        return cls(
            style=data.get("style") or data.get("styles") or "",
            title=data.get("title") or "",
            lyrics=data.get("lyrics") or "",
            variant_count=int(data.get("variant_count", DEFAULT_VARIANT_COUNT)),
        )

    def summary(self) -> dict:
        return {
            "title": self.title,
            "style": self.style,
            "instrumental": self.instrumental,
            "lyrics_chars": len(self.lyrics),
        }


@dataclass(frozen=True)
class Artifact:
    variant_index: int
    path: Path
    size_bytes: int

    def to_dict(self) -> dict:
        return {
            "variant_index": self.variant_index,
            "path": str(self.path),
            "size_bytes": self.size_bytes,
        }


@dataclass
class JobState:
    """Mutable progress record for one job, owned by the orchestrator."""
    request: JobRequest
    status: JobStatus = JobStatus.PENDING
    created_at: float = field(default_factory=time.time)
    submitted_at: float | None = None
    completed_at: float | None = None
    finished_at: float | None = None
    artifacts: list[Artifact] = field(default_factory=list)
    error: str | None = None

    def transition(self, status: JobStatus) -> None:
        if self.status.terminal:
            raise RuntimeError(
                f"Job already finished as {self.status.value}; cannot move to {status.value}"
            )
        self.status = status
        if status.terminal:
            self.finished_at = time.time()

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.COMPLETE


@dataclass
class BatchResult:
    success_count: int = 0
    failure_count: int = 0
    artifacts: list[Artifact] = field(default_factory=list)
    jobs: list[JobState] = field(default_factory=list)

    def record(self, job: JobState) -> None:
        self.jobs.append(job)
        if job.succeeded:
            self.success_count += 1
            self.artifacts.extend(job.artifacts)
        else:
            self.failure_count += 1

    def to_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "artifacts": [a.to_dict() for a in self.artifacts],
        }


@dataclass
class StatusEvent:
    status: Status
    message: str = ""
    data: dict = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "data": dict(self.data),
            "timestamp": self.timestamp,
        }
