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

from importlib.metadata import version

from .client import UploadClient
from .config import UploadClientConfig
from .slicing import compute_slicing, slice_ranges
from .types import (
    DEFAULT_SLICING_CONFIGURATION,
    MultipartUploadError,
    SlicingConfiguration,
    SlicingConfigurationError,
    SlicingResult,
    UploadConfig,
)
from .uploader import MultipartUploader

__version__ = version("multipart-upload")

__all__ = [
    # Classes
    "MultipartUploader",
    "UploadClient",
    "UploadClientConfig",
    "SlicingConfiguration",
    "SlicingResult",
    "UploadConfig",
    # Errors
    "MultipartUploadError",
    "SlicingConfigurationError",
    # Functions
    "compute_slicing",
    "slice_ranges",
    "DEFAULT_SLICING_CONFIGURATION",
]
