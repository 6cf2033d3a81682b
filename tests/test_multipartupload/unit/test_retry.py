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

import pytest

from multipartupload.retry import retry
from multipartupload.types import RetryableError, RetryConfig


class FakeService:
    def __init__(self, error_count, retry_config=None, error_type=RetryableError):
        """
        Initializes the fake service to simulate a specified number of errors.

        Args:
            error_count (int): The number of errors before a successful call.
        """
        self.attempts = 0
        self.error_count = error_count
        self.error_type = error_type
        self._retry_config = retry_config

    @retry
    def call(self):
        self.attempts += 1
        if self.attempts <= self.error_count:
            raise self.error_type("Simulated connection time out error.")
        return "ok"


def test_retry_until_success():
    service = FakeService(error_count=2, retry_config=RetryConfig(attempts=3, delay=0))
    assert service.call() == "ok"
    assert service.attempts == 3


def test_retry_exhausted():
    service = FakeService(error_count=5, retry_config=RetryConfig(attempts=3, delay=0))

    # Expect error when exceeding the maximum number (3) of attempts
    with pytest.raises(RetryableError) as e:
        service.call()

    assert "Simulated connection time out error." in str(e.value)
    assert service.attempts == 3


def test_non_retryable_error_is_not_retried():
    service = FakeService(error_count=1, retry_config=RetryConfig(attempts=3, delay=0), error_type=ValueError)
    with pytest.raises(ValueError):
        service.call()
    assert service.attempts == 1


def test_no_retry_without_retry_config():
    service = FakeService(error_count=1)
    with pytest.raises(RetryableError):
        service.call()
    assert service.attempts == 1
