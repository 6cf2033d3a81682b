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

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Optional


KB = 1024
MB = 1024 * KB
GB = 1024 * MB

#: Smallest object that is worth a multipart session.
DEFAULT_MIN_PART_SIZE = 5 * MB
#: Initial chunk size.
DEFAULT_PART_SIZE = 32 * MB
#: S3 protocol ceiling for a single part.
DEFAULT_MAX_PART_SIZE = 5 * GB
#: S3 protocol ceiling for the number of parts.
DEFAULT_MAX_NUMBER_OF_PARTS = 10000
#: Part count at which the chunk size starts to grow.
DEFAULT_MAGNITUDE_BASE = 100

DEFAULT_PARALLEL_DEGREE = 4
DEFAULT_MIN_RETRIES = 5
DEFAULT_MAX_PERCENT_RETRIES = 10

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


class SlicingConfigurationError(ValueError):
    """
    Exception raised when slicing bounds are inconsistent.
    """

    pass


class RetryableError(Exception):
    """
    Exception raised for errors that should trigger a retry.
    """

    pass


class MultipartUploadError(RuntimeError):
    """
    Exception raised when a multipart upload session is given up and aborted.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        upload_id: Optional[str] = None,
        failed_parts: Sequence[int] = (),
    ):
        super().__init__(message)
        self.key = key
        self.upload_id = upload_id
        self.failed_parts = list(failed_parts)


def _require_int(name: str, value: Any) -> None:
    # bool is an int subclass but never a valid size.
    if isinstance(value, bool) or not isinstance(value, int):
        raise SlicingConfigurationError(f"{name} must be an integer, got {type(value).__name__}.")


@dataclass(frozen=True)
class SlicingConfiguration:
    """
    Immutable bounds for slicing an object into multipart upload parts.

    A single instance is meant to be built once and shared between uploads. Inconsistent bounds are rejected when
    the instance is constructed, never clamped.
    """

    #: Objects smaller than this are uploaded in a single request.
    min_part_size: int = DEFAULT_MIN_PART_SIZE
    #: The chunk size used until the part count reaches ``magnitude_base``.
    default_part_size: int = DEFAULT_PART_SIZE
    #: The largest chunk size ever chosen.
    max_part_size: int = DEFAULT_MAX_PART_SIZE
    #: The largest part count the target service accepts.
    max_number_of_parts: int = DEFAULT_MAX_NUMBER_OF_PARTS
    #: Growth factor controlling when the chunk size starts to grow instead of the part count.
    magnitude_base: int = DEFAULT_MAGNITUDE_BASE

    def __post_init__(self) -> None:
        for name in ("min_part_size", "default_part_size", "max_part_size", "max_number_of_parts", "magnitude_base"):
            _require_int(name, getattr(self, name))
        if self.min_part_size < 1:
            raise SlicingConfigurationError("min_part_size must be at least 1 byte.")
        if self.default_part_size < self.min_part_size:
            raise SlicingConfigurationError(
                f"default_part_size ({self.default_part_size}) must not be smaller than "
                f"min_part_size ({self.min_part_size})."
            )
        if self.max_part_size < self.default_part_size:
            raise SlicingConfigurationError(
                f"max_part_size ({self.max_part_size}) must not be smaller than "
                f"default_part_size ({self.default_part_size})."
            )
        if self.max_number_of_parts < 1:
            raise SlicingConfigurationError("max_number_of_parts must be at least 1.")
        if self.magnitude_base < 2:
            raise SlicingConfigurationError("magnitude_base must be at least 2.")


DEFAULT_SLICING_CONFIGURATION = SlicingConfiguration()


@dataclass(frozen=True)
class Part:
    """
    A contiguous byte range of an object uploaded as one part.
    """

    #: 1-based part number.
    part_number: int
    offset: int
    size: int


@dataclass(frozen=True)
class CompletedPart:
    part_number: int
    etag: str


@dataclass(frozen=True)
class SlicingResult:
    """
    The decomposition of an object into full-size parts plus a final part.

    ``chunk_size * part_count + remaining`` always equals the sliced length. A ``part_count`` of ``0`` means the
    object is not uploaded in parts at all.
    """

    #: Size of every full part. Reported but unused when ``part_count`` is ``0``.
    chunk_size: int
    #: Number of full-size parts.
    part_count: int
    #: Size of the final, possibly undersized, part.
    remaining: int

    @property
    def total_length(self) -> int:
        return self.chunk_size * self.part_count + self.remaining

    @property
    def is_multipart(self) -> bool:
        return self.part_count > 0

    @property
    def total_parts(self) -> int:
        """
        Number of requests a multipart session needs, or ``0`` for a single-request upload.
        """
        if not self.is_multipart:
            return 0
        return self.part_count + (1 if self.remaining > 0 else 0)

    def iter_parts(self) -> Iterator[Part]:
        """
        Yields the parts of a multipart session in ascending part number.
        """
        if not self.is_multipart:
            return
        for index in range(self.part_count):
            yield Part(part_number=index + 1, offset=index * self.chunk_size, size=self.chunk_size)
        if self.remaining > 0:
            yield Part(
                part_number=self.part_count + 1,
                offset=self.part_count * self.chunk_size,
                size=self.remaining,
            )


@dataclass
class UploadConfig:
    """
    Settings of the parallel part upload.
    """

    #: Maximum number of parts in flight.
    parallel_degree: int = DEFAULT_PARALLEL_DEGREE
    #: Lower bound of the failed part budget.
    min_retries: int = DEFAULT_MIN_RETRIES
    #: Failed part budget as a percentage of the full part count.
    max_percent_retries: int = DEFAULT_MAX_PERCENT_RETRIES
    #: Seconds to wait for a round of part uploads before the session is aborted. ``None`` waits forever.
    request_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.parallel_degree < 1:
            raise ValueError("parallel_degree must be at least 1.")
        if self.min_retries < 0:
            raise ValueError("min_retries must be a non-negative number.")
        if self.max_percent_retries < 0:
            raise ValueError("max_percent_retries must be a non-negative number.")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be a positive number.")

    def max_retries(self, part_count: int) -> int:
        """
        :param part_count: Number of full-size parts of the session.
        :return: How many part failures a session tolerates before it is aborted.
        """
        return max(self.min_retries, part_count * self.max_percent_retries // 100)


@dataclass
class RetryConfig:
    """
    A data class that represents the configuration for retry strategy.
    """

    #: The number of attempts before giving up. Must be at least 1.
    attempts: int = DEFAULT_RETRY_ATTEMPTS
    #: The delay (in seconds) between retry attempts. Must be a non-negative value.
    delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("Attempts must be at least 1.")
        if self.delay < 0:
            raise ValueError("Delay must be a non-negative number.")


@dataclass
class Credentials:
    """
    A data class representing the credentials needed to access a storage provider.
    """

    #: The access key for authentication.
    access_key: str
    #: The secret key for authentication.
    secret_key: str
    #: An optional security token for temporary credentials.
    token: Optional[str]
    #: The expiration time of the credentials in ISO 8601 format.
    expiration: Optional[str]


class CredentialsProvider(ABC):
    """
    Abstract base class for providing credentials to access a storage provider.
    """

    @abstractmethod
    def get_credentials(self) -> Credentials:
        pass

    @abstractmethod
    def refresh_credentials(self) -> None:
        pass


class MultipartUploadProvider(ABC):
    """
    Abstract base class for a storage service that accepts multipart uploads.
    """

    @abstractmethod
    def put_object(self, key: str, body: bytes) -> str:
        """
        Uploads an object in a single request.

        :param key: The key where the object will be stored.
        :param body: The content of the object.

        :return: The ETag of the stored object.
        """
        pass

    @abstractmethod
    def initiate_multipart_upload(self, key: str) -> str:
        """
        Opens a multipart upload session.

        :param key: The key where the object will be stored.

        :return: The upload ID identifying the session.
        """
        pass

    @abstractmethod
    def upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        """
        Uploads one part of a session.

        :param key: The key of the object.
        :param upload_id: The upload ID returned by :py:meth:`initiate_multipart_upload`.
        :param part_number: 1-based part number.
        :param body: The content of the part.

        :return: The ETag of the part.
        """
        pass

    @abstractmethod
    def complete_multipart_upload(self, key: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        """
        Assembles the uploaded parts into the final object.

        :param key: The key of the object.
        :param upload_id: The upload ID of the session.
        :param parts: The uploaded parts in ascending part number.

        :return: The ETag of the assembled object.
        """
        pass

    @abstractmethod
    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """
        Discards a session and every part uploaded to it.

        :param key: The key of the object.
        :param upload_id: The upload ID of the session.
        """
        pass


@dataclass
class StorageProviderConfig:
    """
    A data class that represents the configuration needed to initialize a storage provider.
    """

    #: The name or type of the storage provider (e.g., ``s3``, ``file``).
    type: str
    #: Additional options required to configure the storage provider (e.g., endpoint URLs, region, etc.).
    options: Optional[dict[str, Any]] = None
