# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
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

import argparse
import json

from ....config import DEFAULT_POSIX_PROFILE_NAME, UploadClientConfig
from ....slicing import compute_slicing
from ....utils import parse_size
from .action import Action


class SliceAction(Action):
    """Shows how an object of a given length is sliced into parts."""

    name = "slice"
    help = "Show how an object of the given length is sliced into parts"
    examples = """examples:
  # Slice a 1 GiB object with the default settings
  mpu slice 1G

  # Machine readable output
  mpu slice --json 3355443201
"""

    def setup_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--json", action="store_true", help="Print the result as JSON")
        parser.add_argument(
            "--profile",
            default=DEFAULT_POSIX_PROFILE_NAME,
            help="The profile whose slicing settings are used",
        )
        parser.add_argument("length", help="The object length in bytes, optionally with a K, M, G or T suffix")

    def run(self, args: argparse.Namespace) -> int:
        total_length = parse_size(args.length)
        slicing_config = UploadClientConfig.from_file(profile=args.profile).slicing_config
        result = compute_slicing(total_length, slicing_config)

        if args.json:
            print(
                json.dumps(
                    {
                        "total_length": result.total_length,
                        "chunk_size": result.chunk_size,
                        "part_count": result.part_count,
                        "remaining": result.remaining,
                        "total_parts": result.total_parts,
                    }
                )
            )
            return 0

        print(f"length:      {result.total_length}")
        print(f"chunk size:  {result.chunk_size}")
        print(f"full parts:  {result.part_count}")
        print(f"remaining:   {result.remaining}")
        if result.is_multipart:
            print(f"total parts: {result.total_parts}")
            if result.total_parts > slicing_config.max_number_of_parts:
                print(f"warning: exceeds the limit of {slicing_config.max_number_of_parts} parts")
        else:
            print("total parts: 0 (single request upload)")
        return 0
