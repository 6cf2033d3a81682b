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
import tempfile

import pytest

from multipartupload import MultipartUploader, SlicingConfiguration
from multipartupload.providers import PosixFileMultipartProvider
from multipartupload.providers.posix_file import STAGING_DIR_NAME
from multipartupload.types import CompletedPart


def _md5(body: bytes) -> str:
    return hashlib.md5(body).hexdigest()


def test_relative_base_path_is_rejected():
    with pytest.raises(ValueError):
        PosixFileMultipartProvider(base_path="relative/path")


def test_put_object():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)

        etag = provider.put_object("dir/file.bin", b"hello")

        assert etag == _md5(b"hello")
        with open(os.path.join(temp_dir, "dir", "file.bin"), "rb") as fp:
            assert fp.read() == b"hello"


def test_multipart_session():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)

        upload_id = provider.initiate_multipart_upload("out/object.bin")
        staging_dir = os.path.join(temp_dir, STAGING_DIR_NAME, upload_id)
        assert os.path.isdir(staging_dir)

        # Parts may arrive in any order.
        etag_2 = provider.upload_part("out/object.bin", upload_id, 2, b"world")
        etag_1 = provider.upload_part("out/object.bin", upload_id, 1, b"hello ")
        assert etag_1 == _md5(b"hello ")
        assert not os.path.exists(os.path.join(temp_dir, "out", "object.bin"))

        etag = provider.complete_multipart_upload(
            "out/object.bin",
            upload_id,
            [CompletedPart(part_number=1, etag=etag_1), CompletedPart(part_number=2, etag=f'"{etag_2}"')],
        )

        expected_etag = hashlib.md5(bytes.fromhex(etag_1) + bytes.fromhex(etag_2)).hexdigest()
        assert etag == f"{expected_etag}-2"
        with open(os.path.join(temp_dir, "out", "object.bin"), "rb") as fp:
            assert fp.read() == b"hello world"
        assert not os.path.exists(staging_dir)


def test_complete_rejects_wrong_etag():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        upload_id = provider.initiate_multipart_upload("object.bin")
        provider.upload_part("object.bin", upload_id, 1, b"data")

        with pytest.raises(ValueError):
            provider.complete_multipart_upload("object.bin", upload_id, [CompletedPart(1, _md5(b"other"))])
        with pytest.raises(ValueError):
            provider.complete_multipart_upload(
                "object.bin", upload_id, [CompletedPart(1, _md5(b"data")), CompletedPart(2, _md5(b"x"))]
            )
        assert not os.path.exists(os.path.join(temp_dir, "object.bin"))


def test_complete_requires_ascending_parts():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        upload_id = provider.initiate_multipart_upload("object.bin")

        with pytest.raises(ValueError):
            provider.complete_multipart_upload("object.bin", upload_id, [CompletedPart(2, "b"), CompletedPart(1, "a")])
        with pytest.raises(ValueError):
            provider.complete_multipart_upload("object.bin", upload_id, [])


def test_part_numbers_start_at_one():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        upload_id = provider.initiate_multipart_upload("object.bin")

        with pytest.raises(ValueError):
            provider.upload_part("object.bin", upload_id, 0, b"data")


def test_abort():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        upload_id = provider.initiate_multipart_upload("object.bin")
        provider.upload_part("object.bin", upload_id, 1, b"data")

        provider.abort_multipart_upload("object.bin", upload_id)

        assert not os.path.exists(os.path.join(temp_dir, STAGING_DIR_NAME, upload_id))
        assert not os.path.exists(os.path.join(temp_dir, "object.bin"))
        with pytest.raises(FileNotFoundError):
            provider.upload_part("object.bin", upload_id, 1, b"data")


def test_session_is_bound_to_its_key():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        upload_id = provider.initiate_multipart_upload("object.bin")

        with pytest.raises(ValueError):
            provider.upload_part("other.bin", upload_id, 1, b"data")
        with pytest.raises(FileNotFoundError):
            provider.abort_multipart_upload("object.bin", "unknown")


def test_two_part_upload_to_file_system():
    with tempfile.TemporaryDirectory() as temp_dir:
        provider = PosixFileMultipartProvider(base_path=temp_dir)
        config = SlicingConfiguration(
            min_part_size=8, default_part_size=8, max_part_size=8, max_number_of_parts=10000, magnitude_base=100
        )
        uploader = MultipartUploader(provider, slicing_config=config)
        body = b"0123456789abcdef"

        etag = uploader.upload("object.bin", body)

        expected_etag = hashlib.md5(bytes.fromhex(_md5(body[:8])) + bytes.fromhex(_md5(body[8:]))).hexdigest()
        assert etag == f"{expected_etag}-2"
        with open(os.path.join(temp_dir, "object.bin"), "rb") as fp:
            assert fp.read() == body
        assert os.listdir(os.path.join(temp_dir, STAGING_DIR_NAME)) == []
