"""Response envelopes for the downloads API."""

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from social_downloader.jobs.models import Download, DownloadFile


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateDownloadResponse(_Envelope):
    success: bool = True
    download_id: str


class DownloadStatusResponse(_Envelope):
    success: bool = True
    download: Download
    files: List[DownloadFile]


class DownloadListResponse(_Envelope):
    success: bool = True
    downloads: List[Download]


class ErrorResponse(_Envelope):
    success: bool = False
    error: str
