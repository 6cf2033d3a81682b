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
import logging
import sys
from collections.abc import Sequence
from typing import Optional

import multipartupload as mpu

from .actions import ActionRegistry, HelpAction, MPUArgumentParser, SliceAction, UploadAction

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def create_registry() -> ActionRegistry:
    registry = ActionRegistry(SliceAction(), UploadAction())
    registry.register(HelpAction(registry))
    return registry


def create_parser() -> MPUArgumentParser:
    parser = MPUArgumentParser(prog="mpu", usage="mpu [--version] [--log-level LEVEL] <command> [parameters]")
    parser.add_argument("--version", action="store_true", help="Display the version of this tool")
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper, help="Log to stderr at this level")
    parser.add_argument("command", nargs="?", default="help", help="Command to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point of the ``mpu`` command.

    :param argv: Command line arguments without the program name. Defaults to ``sys.argv[1:]``.

    :return: The exit status.
    """
    args, _ = create_parser().parse_known_args(argv)

    if args.version:
        python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        print(f"mpu-cli/{mpu.__version__} Python/{python_version}")
        return 0

    if args.log_level:
        logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    registry = create_registry()
    action = registry.get(args.command)
    if action is None:
        print(f"Unknown command: {args.command}")
        print("Run 'mpu help' to see available commands.")
        return 1

    try:
        return action.run(registry.build_parser(action).parse_args(args.args))
    except Exception as e:
        print(f"mpu: error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
