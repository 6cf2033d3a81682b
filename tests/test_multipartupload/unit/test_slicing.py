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
from concurrent.futures import ThreadPoolExecutor

import pytest

from multipartupload import compute_slicing, slice_ranges
from multipartupload.types import (
    DEFAULT_MAGNITUDE_BASE,
    DEFAULT_MAX_NUMBER_OF_PARTS,
    DEFAULT_MAX_PART_SIZE,
    DEFAULT_MIN_PART_SIZE,
    DEFAULT_PART_SIZE,
    DEFAULT_SLICING_CONFIGURATION,
    MB,
    SlicingConfiguration,
    SlicingResult,
)

D = DEFAULT_PART_SIZE
M = DEFAULT_MAX_PART_SIZE
B = DEFAULT_MAGNITUDE_BASE
N = DEFAULT_MAX_NUMBER_OF_PARTS


@pytest.mark.parametrize(
    argnames=["total_length", "expected"],
    argvalues=[
        # Exactly the minimum size is not sliced.
        [DEFAULT_MIN_PART_SIZE, SlicingResult(chunk_size=D, part_count=0, remaining=DEFAULT_MIN_PART_SIZE)],
        # A single default chunk is not sliced either.
        [D, SlicingResult(chunk_size=D, part_count=0, remaining=D)],
        # First real part.
        [D + 1, SlicingResult(chunk_size=D, part_count=1, remaining=1)],
        # Upper edge of the fixed chunk size.
        [D * B, SlicingResult(chunk_size=D, part_count=B - 1, remaining=D)],
        # Chunk size starts growing.
        [D * B + 1, SlicingResult(chunk_size=2 * D, part_count=B // 2, remaining=1)],
        # Chunk size reaches the maximum.
        [M * B, SlicingResult(chunk_size=M, part_count=B - 1, remaining=M)],
        [M * B + 1, SlicingResult(chunk_size=M, part_count=B, remaining=1)],
        # Largest object that fits into the part limit.
        [M * N, SlicingResult(chunk_size=M, part_count=N - 1, remaining=M)],
        [M * N + 1, SlicingResult(chunk_size=M, part_count=N, remaining=1)],
    ],
)
def test_boundaries(total_length: int, expected: SlicingResult) -> None:
    assert compute_slicing(total_length) == expected


@pytest.mark.parametrize(argnames=["total_length"], argvalues=[[0], [1], [DEFAULT_MIN_PART_SIZE - 1]])
def test_below_min_part_size(total_length: int) -> None:
    result = compute_slicing(total_length)
    assert result.part_count == 0
    assert result.remaining == total_length
    assert result.chunk_size == D
    assert not result.is_multipart
    assert result.total_parts == 0


def test_negative_length() -> None:
    with pytest.raises(ValueError):
        compute_slicing(-1)


def test_fixed_chunk_size_phase() -> None:
    result = compute_slicing(D * 10 + 123)
    assert result == SlicingResult(chunk_size=D, part_count=10, remaining=123)
    assert result.total_parts == 11


def test_growing_chunk_size_phase() -> None:
    # Three default chunks per part keep the part count below the magnitude base.
    result = compute_slicing(D * B * 2 + 1)
    assert result.chunk_size == 3 * D
    assert result.part_count <= B
    assert result.chunk_size % D == 0


def test_invariant() -> None:
    rng = random.Random(42)
    lengths = [rng.randrange(DEFAULT_MIN_PART_SIZE, M * N * 2) for _ in range(2000)]
    lengths += [rng.randrange(DEFAULT_MIN_PART_SIZE, D * B * 4) for _ in range(2000)]
    for total_length in lengths:
        result = compute_slicing(total_length)
        assert result.chunk_size * result.part_count + result.remaining == total_length
        assert result.total_length == total_length
        assert D <= result.chunk_size <= M
        if result.part_count == 0:
            assert result.remaining == total_length
        else:
            assert 0 < result.remaining <= result.chunk_size


def test_invariant_with_small_configuration() -> None:
    config = SlicingConfiguration(
        min_part_size=3, default_part_size=4, max_part_size=20, max_number_of_parts=50, magnitude_base=5
    )
    for total_length in range(0, 2000):
        result = compute_slicing(total_length, config)
        assert result.chunk_size * result.part_count + result.remaining == total_length
        if total_length < config.min_part_size:
            assert result.part_count == 0
        elif result.part_count > 0:
            assert 0 < result.remaining <= result.chunk_size


def test_monotonicity() -> None:
    config = SlicingConfiguration(
        min_part_size=3, default_part_size=4, max_part_size=20, max_number_of_parts=50, magnitude_base=5
    )
    previous = compute_slicing(0, config)
    for total_length in range(1, 2000):
        result = compute_slicing(total_length, config)
        # The chunk size never shrinks.
        assert result.chunk_size >= previous.chunk_size
        # The part count never shrinks while the chunk size stays the same.
        if result.chunk_size == previous.chunk_size:
            assert result.part_count >= previous.part_count
        previous = result


def test_idempotence() -> None:
    for total_length in (0, D, D * B + 1, M * N + 1):
        assert compute_slicing(total_length) == compute_slicing(total_length)


def test_shared_configuration_across_threads() -> None:
    lengths = list(range(DEFAULT_MIN_PART_SIZE, DEFAULT_MIN_PART_SIZE + 100 * MB, MB // 3))
    expected = [compute_slicing(total_length) for total_length in lengths]
    with ThreadPoolExecutor(max_workers=8) as executor:
        actual = list(executor.map(compute_slicing, lengths))
    assert actual == expected


def test_overflow_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    config = SlicingConfiguration(
        min_part_size=1, default_part_size=1, max_part_size=2, max_number_of_parts=3, magnitude_base=2
    )
    with caplog.at_level(logging.WARNING, logger="multipartupload.slicing"):
        result = compute_slicing(100, config)
    assert result.part_count > config.max_number_of_parts
    assert "more than the limit of 3 parts" in caplog.text


def test_slice_ranges() -> None:
    config = SlicingConfiguration(
        min_part_size=8, default_part_size=8, max_part_size=8, max_number_of_parts=10, magnitude_base=10
    )
    assert slice_ranges(16, config) == [(0, 8), (8, 8)]
    assert slice_ranges(20, config) == [(0, 8), (8, 8), (16, 4)]
    assert slice_ranges(5, config) == [(0, 5)]
    assert slice_ranges(0, config) == [(0, 0)]


def test_default_configuration() -> None:
    assert DEFAULT_SLICING_CONFIGURATION == SlicingConfiguration()
    assert DEFAULT_SLICING_CONFIGURATION.min_part_size == 5 * MB
    assert DEFAULT_SLICING_CONFIGURATION.default_part_size == 32 * MB
