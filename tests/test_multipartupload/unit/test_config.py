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

import os
import pickle
import tempfile

import pytest

from multipartupload import UploadClient, UploadClientConfig
from multipartupload.providers import PosixFileMultipartProvider, S3MultipartProvider, StaticS3CredentialsProvider
from multipartupload.types import MB, GB, SlicingConfiguration, SlicingConfigurationError, StorageProviderConfig


def test_json_config() -> None:
    config = UploadClientConfig.from_json(
        """{
        "profiles": {
            "default": {
                "storage_provider": {
                    "type": "file",
                    "options": {
                        "base_path": "/"
                    }
                }
            }
        }
    }"""
    )

    assert config.profile == "default"
    assert isinstance(config.storage_provider, PosixFileMultipartProvider)
    assert config.slicing_config == SlicingConfiguration()
    assert config.storage_provider_config == StorageProviderConfig("file", {"base_path": "/"})


def test_yaml_config() -> None:
    config = UploadClientConfig.from_yaml(
        """
        slicing:
          min_part_size: 8M
          part_size: 64MiB
          max_part_size: 1G
          max_number_of_parts: 1000
          magnitude_base: 10
        upload:
          parallel_degree: 8
          min_retries: 1
          max_percent_retries: 20
          request_timeout: 600
        retry:
          attempts: 5
          delay: 0.5
        profiles:
          s3-profile:
            storage_provider:
              type: s3
              options:
                base_path: bucket/prefix
                region_name: us-east-1
            credentials_provider:
              type: S3Credentials
              options:
                access_key: access
                secret_key: secret
        """,
        profile="s3-profile",
    )

    assert isinstance(config.storage_provider, S3MultipartProvider)
    assert isinstance(config.credentials_provider, StaticS3CredentialsProvider)
    assert config.slicing_config == SlicingConfiguration(
        min_part_size=8 * MB,
        default_part_size=64 * MB,
        max_part_size=1 * GB,
        max_number_of_parts=1000,
        magnitude_base=10,
    )
    assert config.upload_config.parallel_degree == 8
    assert config.upload_config.max_retries(100) == 20
    assert config.upload_config.request_timeout == 600
    assert config.retry_config is not None
    assert config.retry_config.attempts == 5
    assert config.retry_config.delay == 0.5


def test_default_profile_is_implicit() -> None:
    config = UploadClientConfig.from_dict({})
    assert isinstance(config.storage_provider, PosixFileMultipartProvider)


def test_default_profile_cannot_be_overridden() -> None:
    with pytest.raises(ValueError):
        UploadClientConfig.from_dict(
            {"profiles": {"default": {"storage_provider": {"type": "s3", "options": {"base_path": "bucket"}}}}}
        )


def test_unknown_profile() -> None:
    with pytest.raises(ValueError):
        UploadClientConfig.from_dict({}, profile="missing")


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        UploadClientConfig.from_dict({"slicing": {"part_size": "32X"}})
    with pytest.raises(RuntimeError):
        UploadClientConfig.from_dict({"unknown_section": {}})
    with pytest.raises(RuntimeError):
        UploadClientConfig.from_dict(
            {"profiles": {"p": {"storage_provider": {"type": "gcs", "options": {"base_path": "bucket"}}}}}
        )


def test_inconsistent_slicing_bounds_are_rejected() -> None:
    with pytest.raises(SlicingConfigurationError):
        UploadClientConfig.from_dict({"slicing": {"part_size": "1G", "max_part_size": "32M"}})


def test_magnitude_base_below_two_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        UploadClientConfig.from_dict({"slicing": {"magnitude_base": 1}})

    os.environ["MPU_MAGNITUDE_BASE"] = "1"
    with pytest.raises(SlicingConfigurationError):
        UploadClientConfig.from_dict({})


def test_environment_overrides() -> None:
    os.environ["MPU_MIN_PART_SIZE"] = "1"
    os.environ["MPU_PART_SIZE"] = "8"
    os.environ["MPU_MAX_PART_SIZE"] = "16M"
    os.environ["MPU_MAX_NUMBER_OF_PARTS"] = "42"
    os.environ["MPU_MAGNITUDE_BASE"] = "3"
    os.environ["MPU_PARALLEL_DEGREE"] = "2"
    os.environ["MPU_RETRIES_MIN"] = "7"
    os.environ["MPU_RETRIES_MAX_PERCENT"] = "50"

    config = UploadClientConfig.from_dict({"slicing": {"part_size": "64M"}, "upload": {"parallel_degree": 16}})

    assert config.slicing_config == SlicingConfiguration(
        min_part_size=1, default_part_size=8, max_part_size=16 * MB, max_number_of_parts=42, magnitude_base=3
    )
    assert config.upload_config.parallel_degree == 2
    assert config.upload_config.min_retries == 7
    assert config.upload_config.max_percent_retries == 50


def test_invalid_environment_override() -> None:
    os.environ["MPU_PARALLEL_DEGREE"] = "many"
    with pytest.raises(ValueError):
        UploadClientConfig.from_dict({})


def test_env_vars_in_config() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        os.environ["MPU_TEST_BASE_PATH"] = temp_dir
        config = UploadClientConfig.from_dict(
            {"profiles": {"local": {"storage_provider": {"type": "file", "options": {"base_path": "${MPU_TEST_BASE_PATH}"}}}}},
            profile="local",
        )
        assert config.storage_provider_config is not None
        assert config.storage_provider_config.options == {"base_path": temp_dir}


def test_from_file(config_file) -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_file(
            f"""
            slicing:
              part_size: 16M
            profiles:
              local:
                storage_provider:
                  type: file
                  options:
                    base_path: {temp_dir}
            """
        )

        config = UploadClientConfig.from_file(profile="local")
        assert config.slicing_config.default_part_size == 16 * MB

        # The default profile is available without being declared.
        assert UploadClientConfig.from_file().profile == "default"

        with pytest.raises(ValueError):
            UploadClientConfig.from_file(profile="missing")


def test_malformed_config_file(config_file) -> None:
    config_file("profiles: [unclosed")
    with pytest.raises(ValueError):
        UploadClientConfig.read_config_file()


def test_config_is_picklable(file_storage_config) -> None:
    config = UploadClientConfig.from_file()
    restored = pickle.loads(pickle.dumps(config))

    assert restored.profile == "default"
    assert isinstance(restored.storage_provider, PosixFileMultipartProvider)
    assert restored.slicing_config == config.slicing_config


def test_upload_client(config_file) -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        config_file(
            f"""
            slicing:
              min_part_size: 8
              part_size: 8
              max_part_size: 8
            profiles:
              local:
                storage_provider:
                  type: file
                  options:
                    base_path: {temp_dir}
            """
        )
        client = UploadClient.from_profile("local")
        assert client.profile == "local"
        assert not client.is_default_profile()
        assert client.plan(16).total_parts == 2

        client.upload_bytes("bytes.bin", b"0123456789abcdef")
        with open(os.path.join(temp_dir, "bytes.bin"), "rb") as fp:
            assert fp.read() == b"0123456789abcdef"

        source = os.path.join(temp_dir, "source.bin")
        with open(source, "wb") as fp:
            fp.write(b"x" * 20)
        etag = client.upload_file("copy.bin", source)
        assert etag.endswith("-3")
        with open(os.path.join(temp_dir, "copy.bin"), "rb") as fp:
            assert fp.read() == b"x" * 20

        with pytest.raises(FileNotFoundError):
            client.upload_file("missing.bin", os.path.join(temp_dir, "missing.bin"))
