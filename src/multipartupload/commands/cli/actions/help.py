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

from .action import Action, ActionRegistry


class HelpAction(Action):
    name = "help"
    help = "Display help for commands"

    def __init__(self, action_registry: ActionRegistry):
        self.action_registry = action_registry

    def setup_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("command", nargs="?", help="Command to get help for")

    def run(self, args: argparse.Namespace) -> int:
        if not args.command:
            self.action_registry.print_main_help()
            return 0

        action = self.action_registry.get(args.command)
        if action is None:
            print(f"Unknown command: {args.command}")
            return 1

        print()
        self.action_registry.build_parser(action).print_help()
        print()
        return 0
