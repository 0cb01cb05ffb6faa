"""
Upload pipeline for gallery media.

Each uploaded file goes through the same steps:
1. Stage the raw bytes under a fresh unique name
2. Sniff the real format from the staged bytes
3. Transcode QuickTime video to H.264
4. Upload the final artifact to the store
5. Remove the local artifacts

Files in a batch run concurrently and independently. The batch reports
success only if every file made it; otherwise it raises UploadBatchError.
Files that did make it stay in the store, nothing is rolled back.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional, Protocol, Union

from .cache import ListingCache
from .models import IncomingFile, StagedUpload, UploadResult
from .sniffing import requires_transcode, sniff_file

logger = logging.getLogger(__name__)

CONVERTED_SUFFIX = "_converted.mp4"


class ObjectUploader(Protocol):
    """The part of the store client the pipeline needs."""

    async def put_object(
        self,
        key: str,
        file_path: Union[str, Path],
        content_type: str,
    ) -> str:
        ...


class VideoTranscoder(Protocol):
    """Converts one video file into another."""

    async def transcode(
        self,
        input_path: Union[str, Path],
        output_path: Union[str, Path],
    ) -> None:
        ...


class UploadBatchError(Exception):
    """
    Raised when one or more files in a batch failed.

    uploaded_keys lists the files that reached the store anyway, so the
    caller can see what was left behind.
    """

    def __init__(
        self,
        failures: list[tuple[str, BaseException]],
        uploaded_keys: list[str],
    ) -> None:
        self.failures = failures
        self.uploaded_keys = uploaded_keys
        _, first = failures[0]
        message = str(first) or type(first).__name__
        if len(failures) > 1:
            message = f"{message} (and {len(failures) - 1} more failed)"
        super().__init__(message)


def file_extension(filename: str) -> str:
    """Lowercased extension including the dot, or '' if there is none."""
    return Path(filename).suffix.lower()


def _remove(path: Optional[Path]) -> None:
    if path is not None:
        path.unlink(missing_ok=True)


class UploadPipeline:
    """
    Stages, normalizes and uploads files, then refreshes the listing.

    The staging directory is created when the pipeline is built.
    """

    def __init__(
        self,
        store: ObjectUploader,
        transcoder: VideoTranscoder,
        cache: ListingCache,
        staging_dir: Union[str, Path],
        max_files: int = 10,
    ) -> None:
        self._store = store
        self._transcoder = transcoder
        self._cache = cache
        self._staging_dir = Path(staging_dir)
        self._max_files = max_files

        self._staging_dir.mkdir(parents=True, exist_ok=True)

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    @property
    def max_files(self) -> int:
        return self._max_files

    async def upload_batch(self, files: list[IncomingFile]) -> list[UploadResult]:
        """
        Run every file through the pipeline concurrently.

        A failing file does not cancel its siblings. Once all of them have
        finished, any failure is raised as UploadBatchError. On full success
        the listing cache is refreshed before returning, so the next gallery
        query already shows the new files.
        """
        if len(files) > self._max_files:
            raise ValueError(
                f"Too many files: {len(files)}. Maximum per upload: {self._max_files}"
            )

        logger.info("Upload batch started", extra={"files": len(files)})

        outcomes = await asyncio.gather(
            *(self.process_file(file) for file in files),
            return_exceptions=True,
        )

        results: list[UploadResult] = []
        failures: list[tuple[str, BaseException]] = []
        for file, outcome in zip(files, outcomes):
            if isinstance(outcome, BaseException):
                failures.append((file.filename, outcome))
            else:
                results.append(outcome)

        if failures:
            uploaded_keys = [result.key for result in results]
            logger.warning(
                "Upload batch failed",
                extra={
                    "failed": [name for name, _ in failures],
                    "uploaded_keys": uploaded_keys,
                }
            )
            raise UploadBatchError(failures, uploaded_keys)

        await self._cache.refresh()

        logger.info(
            "Upload batch complete",
            extra={"keys": [result.key for result in results]}
        )
        return results

    async def process_file(self, file: IncomingFile) -> UploadResult:
        """
        Push a single file through staging, transcoding and upload.

        Local artifacts are removed whether the file succeeds or fails.
        """
        staged = self._stage_path_for(file)
        converted: Optional[Path] = None

        try:
            await asyncio.to_thread(staged.staging_path.write_bytes, file.data)

            staged.detected_format = await asyncio.to_thread(sniff_file, staged.staging_path)

            if requires_transcode(staged.detected_format):
                converted = self._staging_dir / f"{uuid.uuid4()}{CONVERTED_SUFFIX}"
                await self._transcoder.transcode(staged.staging_path, converted)
                _remove(staged.staging_path)
                staged.final_path = converted

            key = staged.object_key
            await self._store.put_object(key, staged.final_path, file.content_type)

            logger.info(
                "File uploaded",
                extra={
                    "original_name": staged.original_name,
                    "key": key,
                    "format": staged.detected_format.value,
                    "transcoded": staged.was_transcoded,
                }
            )
            return UploadResult(key=key)

        except Exception as e:
            logger.error(
                "Error processing upload",
                extra={"original_name": file.filename, "error": str(e)}
            )
            raise

        finally:
            _remove(staged.staging_path)
            _remove(converted)

    def _stage_path_for(self, file: IncomingFile) -> StagedUpload:
        extension = file_extension(file.filename)
        return StagedUpload(
            original_name=file.filename,
            extension=extension,
            staging_path=self._staging_dir / f"{uuid.uuid4()}{extension}",
        )
