"""
Transcription job submission (AWS Transcribe)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from saysense.core.config import get_settings

logger = logging.getLogger(__name__)


class TranscriptionServiceError(RuntimeError):
    pass


@dataclass(frozen=True)
class TranscriptionJob:
    job_name: str
    status: str


class TranscriptionJobs(Protocol):
    def start_transcription_job(self, job_name: str, language_code: str, media_uri: str) -> TranscriptionJob:
        ...


def job_name_for_session(session_id: str) -> str:
    return f"transcribe-{session_id}"


class AwsTranscriptionJobs:
    def __init__(self, region: str, access_key_id: str = "", secret_access_key: str = "", client: Any = None) -> None:
        self.region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "transcribe",
                region_name=self.region,
                aws_access_key_id=self._access_key_id or None,
                aws_secret_access_key=self._secret_access_key or None,
            )
        return self._client

    def start_transcription_job(self, job_name: str, language_code: str, media_uri: str) -> TranscriptionJob:
        try:
            resp = self._get_client().start_transcription_job(
                TranscriptionJobName=job_name,
                LanguageCode=language_code,
                Media={"MediaFileUri": media_uri},
            )
        except (BotoCoreError, ClientError) as exc:
            raise TranscriptionServiceError(f"Transcription job {job_name} failed to start: {exc}") from exc

        job = resp.get("TranscriptionJob") or {}
        status = str(job.get("TranscriptionJobStatus") or "QUEUED")
        logger.info("transcription_job_started job_name=%s status=%s", job_name, status)
        return TranscriptionJob(job_name=str(job.get("TranscriptionJobName") or job_name), status=status)


@lru_cache()
def get_transcription_jobs() -> AwsTranscriptionJobs:
    settings = get_settings()
    return AwsTranscriptionJobs(
        region=settings.aws_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )
