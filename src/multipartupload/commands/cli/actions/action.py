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
from abc import ABC, abstractmethod
from typing import Optional

from ....config import UploadClientConfig


class MPUArgumentParser(argparse.ArgumentParser):
    """
    Argument parser that reports usage errors with the ``mpu:`` prefix.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault("add_help", False)
        kwargs.setdefault("formatter_class", argparse.RawDescriptionHelpFormatter)
        super().__init__(**kwargs)

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(2, f"mpu: error: {message}\n")


class Action(ABC):
    """
    A ``mpu`` sub-command.
    """

    #: The command name on the command line.
    name: str
    #: One line summary shown by ``mpu help``.
    help: str
    #: Usage examples appended to ``mpu help <command>``.
    examples: str = ""

    @abstractmethod
    def setup_parser(self, parser: argparse.ArgumentParser) -> None:
        pass

    @abstractmethod
    def run(self, args: argparse.Namespace) -> int:
        pass


class ActionRegistry:
    """
    The sub-commands known to ``mpu``, by name.
    """

    def __init__(self, *actions: Action):
        self.actions: dict[str, Action] = {}
        self.register(*actions)

    def register(self, *actions: Action) -> None:
        for action in actions:
            self.actions[action.name] = action

    def get(self, name: str) -> Optional[Action]:
        return self.actions.get(name)

    def build_parser(self, action: Action) -> MPUArgumentParser:
        parser = MPUArgumentParser(
            prog=f"mpu {action.name}", description=action.help, epilog=action.examples or None
        )
        action.setup_parser(parser)
        return parser

    def print_main_help(self) -> None:
        """Print the commands and the configuration file in use."""
        width = max((len(name) for name in self.actions), default=0) + 2

        print()
        print("usage: mpu [--version] [--log-level LEVEL] <command> [parameters]")
        print("Run 'mpu help <command>' for the parameters of a command.")
        print()
        print("commands:")
        for name, action in sorted(self.actions.items()):
            print(f"  {name:<{width}}{action.help}")
        print()
        print(f"config: {UploadClientConfig.find_config_file() or 'none found, using defaults'}")
        print()
