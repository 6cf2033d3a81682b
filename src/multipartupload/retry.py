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
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from .types import RetryableError

logger = logging.getLogger(__name__)


def retry(func: Callable) -> Callable:
    """
    Decorator to retry a method call if a retryable error is raised.

    The retry strategy is read from the ``_retry_config`` attribute of the instance. Without one, the method runs once.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        instance = args[0]
        retry_config = getattr(instance, "_retry_config", None)
        if retry_config is None:
            return func(*args, **kwargs)

        for attempt in range(retry_config.attempts):
            try:
                return func(*args, **kwargs)
            except RetryableError as e:
                logger.warning("Attempt %d failed for %s: %s", attempt + 1, func.__name__, e)
                if attempt < retry_config.attempts - 1:
                    # Exponential backoff with random jitter
                    delay = retry_config.delay * 2**attempt
                    if delay > 0:
                        delay += random.uniform(0, 1)
                    time.sleep(delay)
                else:
                    logger.error("All retry attempts failed for %s", func.__name__)
                    raise
            except Exception as e:
                logger.error("Non-retryable error occurred for %s: %s", func.__name__, e)
                raise

    return wrapper
