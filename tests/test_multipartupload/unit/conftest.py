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

# pytest fixtures.
#
# https://docs.pytest.org/en/stable/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files

import os
import tempfile
import uuid

import pytest

CONFIG_DIR = tempfile.gettempdir()

CONFIG_YAML = """
profiles:
  default:
    storage_provider:
      type: file
      options:
        base_path: /
"""


def setup_config_file(config_yaml):
    config_filename = os.path.join(CONFIG_DIR, f"mpu_config-{uuid.uuid4().hex}.yaml")
    with open(config_filename, "w") as fp:
        fp.write(config_yaml)

    os.environ["MPU_CONFIG"] = config_filename
    return config_filename


def delete_config_file(config_filename):
    os.unlink(config_filename)


@pytest.fixture
def file_storage_config():
    config_filename = setup_config_file(CONFIG_YAML)
    yield config_filename
    delete_config_file(config_filename)


@pytest.fixture
def config_file():
    """
    Writes the given YAML to a temporary config file referenced by ``MPU_CONFIG``.
    """
    config_filenames = []

    def _config_file(config_yaml):
        config_filename = setup_config_file(config_yaml)
        config_filenames.append(config_filename)
        return config_filename

    yield _config_file

    for config_filename in config_filenames:
        delete_config_file(config_filename)


@pytest.fixture(autouse=True, scope="function")
def reset_environment():
    # Reset the MPU environment variables before each test.
    for name in list(os.environ):
        if name.startswith("MPU_"):
            del os.environ[name]

    yield

    for name in list(os.environ):
        if name.startswith("MPU_"):
            del os.environ[name]
