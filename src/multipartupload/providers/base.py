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
import os
import time
from abc import abstractmethod
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Optional, TypeVar

from ..instrumentation.utils import ProviderMetricsHelper, instrumented, set_span_attribute
from ..types import CompletedPart, MultipartUploadProvider

_T = TypeVar("_T")

logger = logging.getLogger(__name__)


@instrumented
class BaseMultipartProvider(MultipartUploadProvider):
    """
    Base class for implementing a storage provider that accepts multipart uploads.

    This class abstracts the translation of keys so that private methods (_put_object, _upload_part, etc.)
    always operate on full paths, not relative keys. This is achieved using a `base_path`, which is automatically
    prepended to all provided keys.
    """

    class _Operation(Enum):
        PUT = "PUT"
        INITIATE = "INITIATE"
        UPLOAD_PART = "UPLOAD_PART"
        COMPLETE = "COMPLETE"
        ABORT = "ABORT"

    _base_path: str
    _provider_name: str

    def __init__(self, base_path: str, provider_name: str):
        self._base_path = base_path
        self._provider_name = provider_name
        self._metric_helper = ProviderMetricsHelper(provider_name)

    def __str__(self) -> str:
        return self._provider_name

    def _prepend_base_path(self, key: str) -> str:
        return os.path.join(self._base_path, key.lstrip("/"))

    def _emit_metrics(
        self,
        operation: _Operation,
        path: str,
        f: Callable[[], _T],
        data_size: Optional[int] = None,
    ) -> _T:
        """
        Metric emission function wrapper.

        :param operation: Operation being performed.
        :param path: Full path of the object.
        :param f: Function performing the operation.
        :param data_size: Bytes sent by the operation, if any.
        :return: Function result.
        """
        set_span_attribute("provider", self._provider_name)
        set_span_attribute("operation", operation.value)
        set_span_attribute("path", path)

        success = False
        # Use a monotonic clock.
        start_time = time.perf_counter()
        try:
            result = f()
            success = True
            return result
        finally:
            elapsed_time = time.perf_counter() - start_time
            self._metric_helper.record(operation.value, elapsed_time, success, data_size)
            logger.debug(
                "%s %s %s (%s bytes) %s in %.3fs",
                self._provider_name,
                operation.value,
                path,
                data_size if data_size is not None else "-",
                "succeeded" if success else "failed",
                elapsed_time,
            )

    def put_object(self, key: str, body: bytes) -> str:
        path = self._prepend_base_path(key)
        return self._emit_metrics(
            BaseMultipartProvider._Operation.PUT,
            path,
            lambda: self._put_object(path, body),
            data_size=len(body),
        )

    def initiate_multipart_upload(self, key: str) -> str:
        path = self._prepend_base_path(key)
        return self._emit_metrics(
            BaseMultipartProvider._Operation.INITIATE,
            path,
            lambda: self._initiate_multipart_upload(path),
        )

    def upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        if part_number < 1:
            raise ValueError(f"Part numbers start at 1, got {part_number}.")
        path = self._prepend_base_path(key)
        set_span_attribute("part_number", part_number)
        return self._emit_metrics(
            BaseMultipartProvider._Operation.UPLOAD_PART,
            path,
            lambda: self._upload_part(path, upload_id, part_number, body),
            data_size=len(body),
        )

    def complete_multipart_upload(self, key: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        part_numbers = [part.part_number for part in parts]
        if part_numbers != sorted(set(part_numbers)):
            raise ValueError(f"Parts must be unique and in ascending part number order, got {part_numbers}.")
        path = self._prepend_base_path(key)
        return self._emit_metrics(
            BaseMultipartProvider._Operation.COMPLETE,
            path,
            lambda: self._complete_multipart_upload(path, upload_id, parts),
        )

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        path = self._prepend_base_path(key)
        self._emit_metrics(
            BaseMultipartProvider._Operation.ABORT,
            path,
            lambda: self._abort_multipart_upload(path, upload_id),
        )

    @abstractmethod
    def _put_object(self, path: str, body: bytes) -> str:
        pass

    @abstractmethod
    def _initiate_multipart_upload(self, path: str) -> str:
        pass

    @abstractmethod
    def _upload_part(self, path: str, upload_id: str, part_number: int, body: bytes) -> str:
        pass

    @abstractmethod
    def _complete_multipart_upload(self, path: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        pass

    @abstractmethod
    def _abort_multipart_upload(self, path: str, upload_id: str) -> None:
        pass
