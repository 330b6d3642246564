import pytest
from botocore.exceptions import ClientError

from saysense.services.storage_service import S3UploadStorage, StorageServiceError, build_upload_key
from saysense.services.transcribe_service import (
    AwsTranscriptionJobs,
    TranscriptionServiceError,
    job_name_for_session,
)


class StubS3:
    def __init__(self) -> None:
        self.calls = []

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.calls.append((operation, Params, ExpiresIn))
        return f"https://bucket.s3.test/{Params['Key']}?sig=1"


class StubTranscribe:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    def start_transcription_job(self, **kwargs):
        if self.fail:
            raise ClientError({"Error": {"Code": "ConflictException", "Message": "exists"}}, "StartTranscriptionJob")
        self.calls.append(kwargs)
        return {"TranscriptionJob": {"TranscriptionJobName": kwargs["TranscriptionJobName"], "TranscriptionJobStatus": "IN_PROGRESS"}}


def test_build_upload_key() -> None:
    assert build_upload_key("talk.wav", now_ms=1234) == "uploads/1234-talk.wav"
    assert build_upload_key("../../etc/pass wd", now_ms=1) == "uploads/1-pass_wd"


def test_presigned_put_url() -> None:
    s3 = StubS3()
    storage = S3UploadStorage(bucket="media", region="us-east-1", expires_in=3600, client=s3)

    result = storage.get_presigned_upload_url("talk.wav", "audio/wav")

    operation, params, expires = s3.calls[0]
    assert operation == "put_object"
    assert params["Bucket"] == "media"
    assert params["ContentType"] == "audio/wav"
    assert expires == 3600
    assert result["key"] == params["Key"]
    assert result["key"].startswith("uploads/") and result["key"].endswith("-talk.wav")


def test_presign_requires_bucket() -> None:
    storage = S3UploadStorage(bucket="", region="us-east-1", client=StubS3())
    with pytest.raises(StorageServiceError):
        storage.get_presigned_upload_url("talk.wav", "audio/wav")


def test_start_transcription_job() -> None:
    stub = StubTranscribe()
    jobs = AwsTranscriptionJobs(region="us-east-1", client=stub)

    job = jobs.start_transcription_job(job_name_for_session("abc"), "en-US", "s3://media/uploads/1-talk.wav")

    assert job.job_name == "transcribe-abc"
    assert job.status == "IN_PROGRESS"
    assert stub.calls[0]["Media"] == {"MediaFileUri": "s3://media/uploads/1-talk.wav"}


def test_transcription_client_error_wrapped() -> None:
    jobs = AwsTranscriptionJobs(region="us-east-1", client=StubTranscribe(fail=True))
    with pytest.raises(TranscriptionServiceError):
        jobs.start_transcription_job("transcribe-x", "en-US", "s3://m/k")
