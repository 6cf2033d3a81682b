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
from typing import IO, Union

from .config import DEFAULT_POSIX_PROFILE_NAME, UploadClientConfig
from .instrumentation.utils import instrumented
from .types import SlicingResult
from .uploader import MultipartUploader

logger = logging.getLogger(__name__)


@instrumented
class UploadClient:
    """
    A client uploading objects to the storage provider of a profile, in parts when they are large enough.
    """

    _config: UploadClientConfig

    def __init__(self, config: UploadClientConfig):
        """
        Initializes the :py:class:`UploadClient` with the given configuration.

        :param config: The configuration object for the upload client.
        """
        self._config = config
        self._storage_provider = config.storage_provider
        self._uploader = MultipartUploader(
            provider=config.storage_provider,
            slicing_config=config.slicing_config,
            upload_config=config.upload_config,
            retry_config=config.retry_config,
        )

    @staticmethod
    def from_profile(profile: str = DEFAULT_POSIX_PROFILE_NAME) -> "UploadClient":
        """
        Builds a client from the configuration file.

        :param profile: Name of the profile to upload with.
        """
        return UploadClient(UploadClientConfig.from_file(profile=profile))

    def is_default_profile(self) -> bool:
        """
        Return True if the upload client is using the default profile.
        """
        return self._config.profile == DEFAULT_POSIX_PROFILE_NAME

    @property
    def profile(self) -> str:
        return self._config.profile

    @property
    def config(self) -> UploadClientConfig:
        return self._config

    def plan(self, total_length: int) -> SlicingResult:
        """
        Computes how an object would be sliced without uploading anything.

        :param total_length: Length of the object in bytes.
        :return: The decomposition of the object into parts.
        """
        return self._uploader.plan(total_length)

    def upload_file(self, key: str, local_file: Union[str, os.PathLike, IO[bytes]]) -> str:
        """
        Uploads a local file to the storage provider.

        :param key: The key where the file should be stored in the storage provider.
        :param local_file: The local path of the file or a seekable binary stream.

        :return: The ETag of the stored object.
        """
        if isinstance(local_file, os.PathLike):
            local_file = os.fspath(local_file)
        if isinstance(local_file, str) and not os.path.isfile(local_file):
            raise FileNotFoundError(f"The file at path '{local_file}' was not found.")
        etag = self._uploader.upload(key, local_file)
        logger.debug("uploaded %s to %s with profile %s", local_file, key, self.profile)
        return etag

    def upload_bytes(self, key: str, body: bytes) -> str:
        """
        Uploads an in-memory object to the storage provider.

        :param key: The key where the object should be stored.
        :param body: The content of the object.

        :return: The ETag of the stored object.
        """
        return self._uploader.upload(key, body)
