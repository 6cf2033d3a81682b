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

import hashlib
import os
import shutil
import tempfile
import uuid
from collections.abc import Sequence
from typing import Any

from ..types import CompletedPart
from .base import BaseMultipartProvider

PROVIDER = "file"

#: Directory under ``base_path`` holding the parts of open sessions.
STAGING_DIR_NAME = ".multipart"

_TARGET_FILE_NAME = "target"
_COPY_BUFFER_SIZE = 8 * 1024 * 1024


def atomic_write(sources: Sequence[str], destination: str) -> None:
    """
    Concatenates files into the specified destination path.

    The output file is either fully written or not modified at all: the content goes to a temporary file first,
    which is then renamed to the destination path.

    :param sources: Paths of the files to concatenate, in order.
    :param destination: The path to the destination file.
    """
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    with tempfile.NamedTemporaryFile(mode="wb", delete=False, dir=os.path.dirname(destination), prefix=".") as fp:
        temp_file_path = fp.name
        for source in sources:
            with open(source, mode="rb") as src:
                shutil.copyfileobj(src, fp, _COPY_BUFFER_SIZE)
    os.rename(src=temp_file_path, dst=destination)


def _write_bytes(body: bytes, destination: str) -> None:
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    with tempfile.NamedTemporaryFile(mode="wb", delete=False, dir=os.path.dirname(destination), prefix=".") as fp:
        temp_file_path = fp.name
        fp.write(body)
    os.rename(src=temp_file_path, dst=destination)


def _file_md5(path: str) -> "hashlib._Hash":
    digest = hashlib.md5()
    with open(path, "rb") as fp:
        for block in iter(lambda: fp.read(_COPY_BUFFER_SIZE), b""):
            digest.update(block)
    return digest


class PosixFileMultipartProvider(BaseMultipartProvider):
    """
    A concrete implementation of the :py:class:`multipartupload.types.MultipartUploadProvider` for POSIX file systems.

    Parts are staged as files under ``<base_path>/.multipart/<upload_id>/`` and concatenated into the destination
    when the session completes. ETags follow the S3 convention: the MD5 hex digest of a part, and the MD5 of the
    concatenated part digests suffixed with the part count for a completed object.
    """

    def __init__(self, base_path: str, **kwargs: Any) -> None:
        """
        :param base_path: The root directory where all operations will be scoped.
        """
        if base_path == "":
            base_path = "/"

        if not base_path.startswith("/"):
            raise ValueError(f"The base_path {base_path} must be an absolute path.")

        super().__init__(base_path=base_path, provider_name=PROVIDER)

    def _staging_dir(self, upload_id: str) -> str:
        return os.path.join(self._base_path, STAGING_DIR_NAME, upload_id)

    def _open_session(self, path: str, upload_id: str) -> str:
        staging_dir = self._staging_dir(upload_id)
        try:
            with open(os.path.join(staging_dir, _TARGET_FILE_NAME), "r") as fp:
                target = fp.read()
        except FileNotFoundError:
            raise FileNotFoundError(f"No multipart upload {upload_id} in progress for {path}.")  # pylint: disable=raise-missing-from
        if target != path:
            raise ValueError(f"Multipart upload {upload_id} belongs to {target}, not {path}.")
        return staging_dir

    def _put_object(self, path: str, body: bytes) -> str:
        _write_bytes(body, path)
        return hashlib.md5(body).hexdigest()

    def _initiate_multipart_upload(self, path: str) -> str:
        upload_id = uuid.uuid4().hex
        staging_dir = self._staging_dir(upload_id)
        os.makedirs(staging_dir)
        with open(os.path.join(staging_dir, _TARGET_FILE_NAME), "w") as fp:
            fp.write(path)
        return upload_id

    def _upload_part(self, path: str, upload_id: str, part_number: int, body: bytes) -> str:
        staging_dir = self._open_session(path, upload_id)
        _write_bytes(body, os.path.join(staging_dir, f"{part_number:05d}.part"))
        return hashlib.md5(body).hexdigest()

    def _complete_multipart_upload(self, path: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        staging_dir = self._open_session(path, upload_id)
        if not parts:
            raise ValueError(f"Multipart upload {upload_id} cannot be completed without parts.")

        part_files = []
        digests = []
        for part in parts:
            part_file = os.path.join(staging_dir, f"{part.part_number:05d}.part")
            if not os.path.isfile(part_file):
                raise ValueError(f"Part {part.part_number} of multipart upload {upload_id} was never uploaded.")
            digest = _file_md5(part_file)
            if digest.hexdigest() != part.etag.strip('"'):
                raise ValueError(f"ETag mismatch for part {part.part_number} of multipart upload {upload_id}.")
            part_files.append(part_file)
            digests.append(digest.digest())

        atomic_write(part_files, path)
        shutil.rmtree(staging_dir)
        return f"{hashlib.md5(b''.join(digests)).hexdigest()}-{len(parts)}"

    def _abort_multipart_upload(self, path: str, upload_id: str) -> None:
        staging_dir = self._open_session(path, upload_id)
        shutil.rmtree(staging_dir)
