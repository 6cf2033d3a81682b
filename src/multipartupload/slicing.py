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

from .types import DEFAULT_SLICING_CONFIGURATION, SlicingConfiguration, SlicingResult

logger = logging.getLogger(__name__)


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def compute_slicing(
    total_length: int, config: SlicingConfiguration = DEFAULT_SLICING_CONFIGURATION
) -> SlicingResult:
    """
    Decomposes an object of ``total_length`` bytes into multipart upload parts.

    The decomposition goes through three phases as the length grows:

    1. Up to ``default_part_size * magnitude_base`` bytes the chunk size stays at ``default_part_size`` and only the
       part count grows.
    2. Past that, the chunk size grows in whole multiples of ``default_part_size`` so that the part count stays
       close to ``magnitude_base``.
    3. Once the chunk size reaches ``max_part_size`` it stays there and the part count grows again.

    The final part is never empty: an exact multiple of the chunk size reports its last chunk as ``remaining``.
    Objects smaller than ``min_part_size`` are not sliced (``part_count == 0``).

    A part count above ``max_number_of_parts`` is not an error here. It is logged and left to the caller.

    :param total_length: Length of the object in bytes.
    :param config: Slicing bounds.

    :return: The chunk size, the number of full-size parts and the size of the final part.

    :raises ValueError: If ``total_length`` is negative.
    """
    if total_length < 0:
        raise ValueError(f"total_length must be a non-negative number, got {total_length}.")

    if total_length < config.min_part_size:
        return SlicingResult(chunk_size=config.default_part_size, part_count=0, remaining=total_length)

    # Number of default-sized units per chunk; 1 for the whole first phase.
    units = _ceil_div(total_length, config.default_part_size * config.magnitude_base)
    chunk_size = min(units * config.default_part_size, config.max_part_size)

    part_count = (total_length - 1) // chunk_size
    remaining = total_length - chunk_size * part_count

    if part_count > config.max_number_of_parts:
        logger.warning(
            "%d bytes need %d parts of %d bytes, more than the limit of %d parts",
            total_length,
            part_count,
            chunk_size,
            config.max_number_of_parts,
        )

    logger.debug(
        "%d bytes partitioned in %d parts of part size: %d, remaining: %d",
        total_length,
        part_count,
        chunk_size,
        remaining,
    )
    return SlicingResult(chunk_size=chunk_size, part_count=part_count, remaining=remaining)


def slice_ranges(
    total_length: int, config: SlicingConfiguration = DEFAULT_SLICING_CONFIGURATION
) -> list[tuple[int, int]]:
    """
    :return: ``(offset, size)`` of every part, or a single range covering the object if it is not sliced.
    """
    result = compute_slicing(total_length, config)
    if not result.is_multipart:
        return [(0, total_length)]
    return [(part.offset, part.size) for part in result.iter_parts()]
