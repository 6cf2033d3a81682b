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
import sys

from ....client import UploadClient
from ....config import DEFAULT_POSIX_PROFILE_NAME
from .action import Action


class UploadAction(Action):
    """Uploads a local file, in parts when it is large enough."""

    name = "upload"
    help = "Upload a local file to the storage provider of a profile"
    examples = """examples:
  # Upload to the local file system
  mpu upload ./dataset.tar /data/dataset.tar

  # Upload to an S3 profile
  mpu upload --profile my-s3 ./dataset.tar prefix/dataset.tar
"""

    def setup_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--profile", default=DEFAULT_POSIX_PROFILE_NAME, help="The profile to upload with")
        parser.add_argument("--verbose", action="store_true", help="Print what is uploaded before it starts")
        parser.add_argument("source", help="The local file to upload")
        parser.add_argument("key", help="The key of the object, relative to the base path of the profile")

    def run(self, args: argparse.Namespace) -> int:
        if args.verbose:
            print(f"Uploading {args.source} to {args.key} with profile {args.profile} ...")
        try:
            client = UploadClient.from_profile(args.profile)
            etag = client.upload_file(args.key, args.source)
            print(etag)
            return 0
        except Exception as e:
            print(f"Error during upload: {str(e)}", file=sys.stderr)
            return 1
