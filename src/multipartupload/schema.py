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

from typing import Any

from jsonschema import validate

EXTENSION_SCHEMA = {
    "type": "object",
    "properties": {
        "type": {"type": "string"},
        "options": {
            "type": "object",
        },
    },
    "required": ["type"],
}

SIZE_SCHEMA = {
    "anyOf": [
        {"type": "integer", "minimum": 1},
        {"type": "string", "pattern": "(?i)^[0-9]+[KMGT]?(i?b)?$"},  # Accepts size with K, M, G, T suffix
    ]
}

SLICING_SCHEMA = {
    "type": "object",
    "properties": {
        "min_part_size": SIZE_SCHEMA,
        "part_size": SIZE_SCHEMA,
        "max_part_size": SIZE_SCHEMA,
        "max_number_of_parts": {"type": "integer", "minimum": 1},
        "magnitude_base": {"type": "integer", "minimum": 2},
    },
    "additionalProperties": False,
}

UPLOAD_SCHEMA = {
    "type": "object",
    "properties": {
        "parallel_degree": {"type": "integer", "minimum": 1},
        "min_retries": {"type": "integer", "minimum": 0},
        "max_percent_retries": {"type": "integer", "minimum": 0},
        "request_timeout": {"type": "number", "exclusiveMinimum": 0},
    },
    "additionalProperties": False,
}

RETRY_SCHEMA = {
    "type": "object",
    "properties": {
        "attempts": {"type": "integer", "minimum": 1},
        "delay": {"type": "number", "minimum": 0},
    },
    "additionalProperties": False,
}

OTEL_SCHEMA = {
    "type": "object",
    "properties": {
        "metrics": {
            "type": "object",
            "properties": {"exporter": EXTENSION_SCHEMA},
        },
        "traces": {
            "type": "object",
            "properties": {"exporter": EXTENSION_SCHEMA},
        },
    },
    "additionalProperties": False,
}

PROFILE_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "properties": {
            "storage_provider": {
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "enum": ["file", "s3"],
                    },
                    "options": {
                        "type": "object",
                        "properties": {
                            "base_path": {"type": "string", "minLength": 0},
                        },
                        "required": ["base_path"],
                    },
                },
                "required": ["type", "options"],
            },
            "credentials_provider": EXTENSION_SCHEMA,
            "comment": {"type": "string"},
        },
        "required": ["storage_provider"],
    },
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "profiles": PROFILE_SCHEMA,
        "slicing": SLICING_SCHEMA,
        "upload": UPLOAD_SCHEMA,
        "retry": RETRY_SCHEMA,
        "opentelemetry": OTEL_SCHEMA,
    },
    "additionalProperties": False,
}


def validate_config(config_dict: dict[str, Any]) -> None:
    try:
        validate(instance=config_dict, schema=CONFIG_SCHEMA)
    except Exception as e:
        raise RuntimeError("Failed to validate the config file", e)
