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

import importlib
import logging
from typing import Any

from .base import BaseMultipartProvider
from .posix_file import PosixFileMultipartProvider

# Dictionary to hold lazy imported classes
_imports: dict[str, Any] = {}

logger = logging.getLogger(__name__)


def __getattr__(name: str) -> Any:
    """Lazily import attributes when accessed."""
    if name in _imports:
        return _imports[name]

    module_map = {
        "S3MultipartProvider": ".s3",
        "StaticS3CredentialsProvider": ".s3",
    }

    if name in module_map:
        module_name = module_map[name]
        try:
            module = importlib.import_module(module_name, package=__package__)
            obj = getattr(module, name)
            _imports[name] = obj
            return obj
        except ModuleNotFoundError:
            logger.error(
                "\n".join(
                    [
                        "",
                        "Accessing Amazon S3 or other S3-compatible storage requires additional dependencies.",
                        "To use this storage provider, please install the optional dependency:",
                        "",
                        "    pip install multipart-upload[boto3]",
                        "",
                    ]
                )
            )
            raise

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "BaseMultipartProvider",
    "PosixFileMultipartProvider",
]
