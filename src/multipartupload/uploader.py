# SPDX-FileCopyrightText: Copyright (c) 2024 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import IO, Optional, Union

from .instrumentation.utils import instrumented, set_span_attribute
from .payload import Payload, as_payload
from .retry import retry
from .slicing import compute_slicing
from .types import (
    DEFAULT_SLICING_CONFIGURATION,
    CompletedPart,
    MultipartUploadError,
    MultipartUploadProvider,
    Part,
    RetryConfig,
    SlicingConfiguration,
    SlicingResult,
    UploadConfig,
)

logger = logging.getLogger(__name__)

UploadSource = Union[str, bytes, bytearray, memoryview, IO[bytes], Payload]


@instrumented
class MultipartUploader:
    """
    Uploads objects to a :py:class:`multipartupload.types.MultipartUploadProvider`, slicing the large ones into
    parts that are uploaded in parallel.

    Failed parts are retried as long as the session's failure budget allows. A session that runs out of budget,
    times out or fails to complete is aborted, so no orphaned parts are left behind.
    """

    def __init__(
        self,
        provider: MultipartUploadProvider,
        slicing_config: SlicingConfiguration = DEFAULT_SLICING_CONFIGURATION,
        upload_config: Optional[UploadConfig] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        """
        :param provider: The storage provider to upload to.
        :param slicing_config: Bounds used to slice objects into parts.
        :param upload_config: Parallelism, failure budget and timeout of the part uploads.
        :param retry_config: Retry strategy of the single-request calls (put, initiate, complete).
        """
        self._provider = provider
        self._slicing_config = slicing_config
        self._upload_config = upload_config or UploadConfig()
        self._retry_config = retry_config

    def plan(self, total_length: int) -> SlicingResult:
        """
        :param total_length: Length of an object in bytes.
        :return: How an object of that length would be sliced.
        """
        return compute_slicing(total_length, self._slicing_config)

    def upload(self, key: str, source: UploadSource) -> str:
        """
        Uploads an object, in parts when it is large enough.

        :param key: The key where the object will be stored.
        :param source: A local file path, a bytes-like object, a seekable binary stream or a payload.

        :return: The ETag of the stored object.

        :raises MultipartUploadError: If the object needs more parts than allowed or the session was aborted.
        """
        payload = as_payload(source)
        slicing = compute_slicing(payload.content_length, self._slicing_config)
        set_span_attribute("key", key)
        set_span_attribute("content_length", payload.content_length)
        set_span_attribute("total_parts", slicing.total_parts)

        if not slicing.is_multipart:
            logger.debug("uploading %s (%d bytes) in a single request", key, payload.content_length)
            return self._put_object(key, payload.read_all())

        if slicing.total_parts > self._slicing_config.max_number_of_parts:
            raise MultipartUploadError(
                f"{key} of {payload.content_length} bytes needs {slicing.total_parts} parts, "
                f"more than the limit of {self._slicing_config.max_number_of_parts} parts.",
                key=key,
            )

        return self._upload_parts(key, payload, slicing)

    @retry
    def _put_object(self, key: str, body: bytes) -> str:
        return self._provider.put_object(key, body)

    @retry
    def _initiate(self, key: str) -> str:
        return self._provider.initiate_multipart_upload(key)

    @retry
    def _complete(self, key: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        return self._provider.complete_multipart_upload(key, upload_id, parts)

    def _abort(self, key: str, upload_id: str) -> None:
        try:
            self._provider.abort_multipart_upload(key, upload_id)
        except Exception as error:
            logger.error("failed to abort multipart upload of %s with uploadId %s: %s", key, upload_id, error)
        else:
            logger.warning("aborted multipart upload of %s with uploadId %s", key, upload_id)

    def _upload_part(self, key: str, upload_id: str, part: Part, payload: Payload) -> str:
        body = payload.read(part.offset, part.size)
        start_time = time.perf_counter()
        etag = self._provider.upload_part(key, upload_id, part.part_number, body)
        logger.debug(
            "uploaded part %d of %s in %.3fs with uploadId %s",
            part.part_number,
            key,
            time.perf_counter() - start_time,
            upload_id,
        )
        return etag

    def _upload_parts(self, key: str, payload: Payload, slicing: SlicingResult) -> str:
        max_retries = self._upload_config.max_retries(slicing.part_count)
        upload_id = self._initiate(key)
        logger.debug(
            "initiated multipart upload of %s with uploadId %s consisting of %d parts (possible max. retries: %d)",
            key,
            upload_id,
            slicing.total_parts,
            max_retries,
        )

        executor = ThreadPoolExecutor(max_workers=self._upload_config.parallel_degree, thread_name_prefix="mpu")
        submitted: list[Future] = []
        try:
            etags, errors = self._run_parts(executor, submitted, key, upload_id, payload, slicing, max_retries)
            parts = [CompletedPart(part_number=number, etag=etags[number]) for number in sorted(etags)]
            etag = self._complete(key, upload_id, parts)
        except Exception as error:
            self._drain(executor, submitted)
            self._abort(key, upload_id)
            if isinstance(error, MultipartUploadError):
                raise
            raise MultipartUploadError(
                f"Multipart upload of {key} with uploadId {upload_id} failed: {error}", key=key, upload_id=upload_id
            ) from error
        finally:
            executor.shutdown(wait=False)

        logger.debug(
            "multipart upload of %s with uploadId %s successfully finished with %d retries", key, upload_id, errors
        )
        return etag

    def _drain(self, executor: ThreadPoolExecutor, submitted: Sequence[Future]) -> None:
        """
        Drops the queued parts and waits for the running ones, so no part reaches a session that is being aborted.
        """
        executor.shutdown(wait=False, cancel_futures=True)
        running = [future for future in submitted if not future.done()]
        if not running:
            return
        _, still_running = wait(running, timeout=self._upload_config.request_timeout)
        if still_running:
            logger.warning("%d parts still running while the multipart upload is aborted", len(still_running))

    def _run_parts(
        self,
        executor: ThreadPoolExecutor,
        submitted: list[Future],
        key: str,
        upload_id: str,
        payload: Payload,
        slicing: SlicingResult,
        max_retries: int,
    ) -> tuple[dict[int, str], int]:
        """
        Uploads every part, resubmitting failed ones in rounds until all succeed or the budget is exhausted.

        :return: The ETag of every part by part number, and the number of failed attempts.
        """
        timeout = self._upload_config.request_timeout
        etags: dict[int, str] = {}
        errors = 0
        pending = list(slicing.iter_parts())

        while pending:
            futures: dict[Future, Part] = {
                executor.submit(self._upload_part, key, upload_id, part, payload): part for part in pending
            }
            submitted.extend(futures)
            done, not_done = wait(futures, timeout=timeout)
            if not_done:
                raise MultipartUploadError(
                    f"Timed out after {timeout}s waiting for {len(not_done)} parts of {key} with uploadId {upload_id}.",
                    key=key,
                    upload_id=upload_id,
                    failed_parts=sorted(futures[future].part_number for future in not_done),
                )

            pending = []
            last_error: Optional[BaseException] = None
            for future in sorted(done, key=lambda f: futures[f].part_number):
                part = futures[future]
                error = future.exception()
                if error is None:
                    etags[part.part_number] = future.result()
                    continue
                errors += 1
                last_error = error
                pending.append(part)
                logger.error(
                    "%s while uploading part %d - [%d,%d] of %s with uploadId %s",
                    error,
                    part.part_number,
                    part.offset,
                    part.size,
                    key,
                    upload_id,
                )

            if errors > max_retries:
                raise MultipartUploadError(
                    f"Too many failed parts: {errors} while multipart upload of {key} with uploadId {upload_id}.",
                    key=key,
                    upload_id=upload_id,
                    failed_parts=[part.part_number for part in pending],
                ) from last_error

        return etags, errors
