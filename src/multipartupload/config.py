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

import json
import logging
import os
from typing import Any, Optional

import yaml

from .instrumentation import setup_opentelemetry
from .schema import validate_config
from .types import (
    DEFAULT_MAGNITUDE_BASE,
    DEFAULT_MAX_NUMBER_OF_PARTS,
    DEFAULT_MAX_PART_SIZE,
    DEFAULT_MAX_PERCENT_RETRIES,
    DEFAULT_MIN_PART_SIZE,
    DEFAULT_MIN_RETRIES,
    DEFAULT_PARALLEL_DEGREE,
    DEFAULT_PART_SIZE,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    CredentialsProvider,
    MultipartUploadProvider,
    RetryConfig,
    SlicingConfiguration,
    StorageProviderConfig,
    UploadConfig,
)
from .utils import expand_env_vars, import_class, parse_size

DEFAULT_POSIX_PROFILE_NAME = "default"
DEFAULT_POSIX_PROFILE = {
    "profiles": {DEFAULT_POSIX_PROFILE_NAME: {"storage_provider": {"type": "file", "options": {"base_path": "/"}}}}
}

STORAGE_PROVIDER_MAPPING = {
    "file": "PosixFileMultipartProvider",
    "s3": "S3MultipartProvider",
}

CREDENTIALS_PROVIDER_MAPPING = {
    "S3Credentials": "StaticS3CredentialsProvider",
}

DEFAULT_MPU_CONFIG_FILE_SEARCH_PATHS = (
    # Yaml
    "/etc/mpu_config.yaml",
    os.path.join(os.getenv("HOME", ""), ".config", "mpu", "config.yaml"),
    os.path.join(os.getenv("HOME", ""), ".mpu_config.yaml"),
    # Json
    "/etc/mpu_config.json",
    os.path.join(os.getenv("HOME", ""), ".config", "mpu", "config.json"),
    os.path.join(os.getenv("HOME", ""), ".mpu_config.json"),
)

# Environment variables taking precedence over the config file, keyed by (section, option).
ENV_OVERRIDES = {
    "MPU_MIN_PART_SIZE": ("slicing", "min_part_size"),
    "MPU_PART_SIZE": ("slicing", "part_size"),
    "MPU_MAX_PART_SIZE": ("slicing", "max_part_size"),
    "MPU_MAX_NUMBER_OF_PARTS": ("slicing", "max_number_of_parts"),
    "MPU_MAGNITUDE_BASE": ("slicing", "magnitude_base"),
    "MPU_PARALLEL_DEGREE": ("upload", "parallel_degree"),
    "MPU_RETRIES_MIN": ("upload", "min_retries"),
    "MPU_RETRIES_MAX_PERCENT": ("upload", "max_percent_retries"),
}

PACKAGE_NAME = "multipartupload"

logger = logging.getLogger(__name__)


def _read_env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}.")  # pylint: disable=raise-missing-from


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Overlays the ``MPU_*`` environment variables on the ``slicing`` and ``upload`` sections of a config dictionary.

    :param config_dict: Dictionary of configuration options. Not modified.

    :return: A copy of ``config_dict`` with the overrides applied.
    """
    config_dict = dict(config_dict)
    for env_name, (section, option) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        section_dict = dict(config_dict.get(section) or {})
        if section == "slicing" and option.endswith("_size"):
            section_dict[option] = parse_size(value)
        else:
            section_dict[option] = _read_env_int(env_name, value)
        config_dict[section] = section_dict
        logger.debug("%s.%s overridden by %s=%s", section, option, env_name, value)
    return config_dict


class UploadClientConfigLoader:
    _profiles: dict[str, Any]
    _profile: str
    _profile_dict: dict[str, Any]
    _slicing_dict: dict[str, Any]
    _upload_dict: dict[str, Any]
    _retry_dict: dict[str, Any]
    _opentelemetry_dict: Optional[dict[str, Any]]

    def __init__(self, config_dict: dict[str, Any], profile: str = DEFAULT_POSIX_PROFILE_NAME) -> None:
        """
        Initializes a :py:class:`UploadClientConfigLoader` to create an UploadClientConfig.

        :param config_dict: Dictionary of configuration options.
        :param profile: Name of profile in ``config_dict`` to use to build configuration.
        """
        # Interpolates all environment variables into actual values.
        config_dict = apply_env_overrides(expand_env_vars(config_dict))

        self._profiles = dict(config_dict.get("profiles") or {})

        if DEFAULT_POSIX_PROFILE_NAME not in self._profiles:
            # Assign the default POSIX profile
            self._profiles[DEFAULT_POSIX_PROFILE_NAME] = DEFAULT_POSIX_PROFILE["profiles"][DEFAULT_POSIX_PROFILE_NAME]
        else:
            # Cannot override default POSIX profile
            storage_provider_type = (
                self._profiles[DEFAULT_POSIX_PROFILE_NAME].get("storage_provider", {}).get("type", None)
            )
            if storage_provider_type != "file":
                raise ValueError(
                    f'Cannot override "{DEFAULT_POSIX_PROFILE_NAME}" profile with storage provider type '
                    f'"{storage_provider_type}"; expected "file".'
                )

        profile_dict = self._profiles.get(profile)

        if not profile_dict:
            raise ValueError(f"Profile {profile} not found; available profiles: {list(self._profiles.keys())}")

        self._profile = profile
        self._profile_dict = profile_dict

        self._slicing_dict = config_dict.get("slicing") or {}
        self._upload_dict = config_dict.get("upload") or {}
        self._retry_dict = config_dict.get("retry") or {}
        self._opentelemetry_dict = config_dict.get("opentelemetry", None)

    def _build_credentials_provider(
        self, credentials_provider_dict: Optional[dict[str, Any]]
    ) -> Optional[CredentialsProvider]:
        if not credentials_provider_dict:
            return None

        if credentials_provider_dict["type"] not in CREDENTIALS_PROVIDER_MAPPING:
            # Fully qualified class path case
            class_type = credentials_provider_dict["type"]
            if "." not in class_type:
                raise ValueError(
                    f"Credentials provider {class_type} is not supported. Supported providers are: "
                    f"{list(CREDENTIALS_PROVIDER_MAPPING.keys())} or a fully qualified class name."
                )
            module_name, class_name = class_type.rsplit(".", 1)
            cls = import_class(class_name, module_name)
        else:
            # Mapped class name case
            class_name = CREDENTIALS_PROVIDER_MAPPING[credentials_provider_dict["type"]]
            cls = import_class(class_name, ".providers", PACKAGE_NAME)

        return cls(**credentials_provider_dict.get("options", {}))

    def _build_storage_provider(
        self,
        storage_provider_name: str,
        storage_options: Optional[dict[str, Any]] = None,
        credentials_provider: Optional[CredentialsProvider] = None,
    ) -> MultipartUploadProvider:
        storage_options = dict(storage_options or {})
        if storage_provider_name not in STORAGE_PROVIDER_MAPPING:
            raise ValueError(
                f"Storage provider {storage_provider_name} is not supported. "
                f"Supported providers are: {list(STORAGE_PROVIDER_MAPPING.keys())}"
            )
        if credentials_provider:
            storage_options["credentials_provider"] = credentials_provider
        class_name = STORAGE_PROVIDER_MAPPING[storage_provider_name]
        cls = import_class(class_name, ".providers", PACKAGE_NAME)
        return cls(**storage_options)

    def _build_slicing_config(self) -> SlicingConfiguration:
        slicing_dict = self._slicing_dict
        return SlicingConfiguration(
            min_part_size=parse_size(slicing_dict.get("min_part_size", DEFAULT_MIN_PART_SIZE)),
            default_part_size=parse_size(slicing_dict.get("part_size", DEFAULT_PART_SIZE)),
            max_part_size=parse_size(slicing_dict.get("max_part_size", DEFAULT_MAX_PART_SIZE)),
            max_number_of_parts=slicing_dict.get("max_number_of_parts", DEFAULT_MAX_NUMBER_OF_PARTS),
            magnitude_base=slicing_dict.get("magnitude_base", DEFAULT_MAGNITUDE_BASE),
        )

    def _build_upload_config(self) -> UploadConfig:
        upload_dict = self._upload_dict
        return UploadConfig(
            parallel_degree=upload_dict.get("parallel_degree", DEFAULT_PARALLEL_DEGREE),
            min_retries=upload_dict.get("min_retries", DEFAULT_MIN_RETRIES),
            max_percent_retries=upload_dict.get("max_percent_retries", DEFAULT_MAX_PERCENT_RETRIES),
            request_timeout=upload_dict.get("request_timeout", None),
        )

    def build_config(self) -> "UploadClientConfig":
        storage_provider_dict = self._profile_dict.get("storage_provider", None)
        if not storage_provider_dict:
            raise ValueError(f"Missing storage_provider in the config for profile {self._profile}.")

        storage_provider_name = storage_provider_dict["type"]
        storage_options = storage_provider_dict.get("options", {})

        credentials_provider = self._build_credentials_provider(self._profile_dict.get("credentials_provider", None))
        storage_provider = self._build_storage_provider(storage_provider_name, storage_options, credentials_provider)

        # retry options
        retry_config = RetryConfig(
            attempts=self._retry_dict.get("attempts", DEFAULT_RETRY_ATTEMPTS),
            delay=self._retry_dict.get("delay", DEFAULT_RETRY_DELAY),
        )

        # set up OpenTelemetry providers once per process
        if self._opentelemetry_dict:
            setup_opentelemetry(self._opentelemetry_dict)

        return UploadClientConfig(
            profile=self._profile,
            storage_provider=storage_provider,
            storage_provider_config=StorageProviderConfig(storage_provider_name, storage_options),
            credentials_provider=credentials_provider,
            slicing_config=self._build_slicing_config(),
            upload_config=self._build_upload_config(),
            retry_config=retry_config,
        )


class UploadClientConfig:
    """
    Configuration class for the :py:class:`multipartupload.UploadClient`.
    """

    profile: str
    storage_provider: MultipartUploadProvider
    storage_provider_config: Optional[StorageProviderConfig]
    credentials_provider: Optional[CredentialsProvider]
    slicing_config: SlicingConfiguration
    upload_config: UploadConfig
    retry_config: Optional[RetryConfig]

    _config_dict: Optional[dict[str, Any]]

    def __init__(
        self,
        profile: str,
        storage_provider: MultipartUploadProvider,
        storage_provider_config: Optional[StorageProviderConfig] = None,
        credentials_provider: Optional[CredentialsProvider] = None,
        slicing_config: Optional[SlicingConfiguration] = None,
        upload_config: Optional[UploadConfig] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.profile = profile
        self.storage_provider = storage_provider
        self.storage_provider_config = storage_provider_config
        self.credentials_provider = credentials_provider
        self.slicing_config = slicing_config or SlicingConfiguration()
        self.upload_config = upload_config or UploadConfig()
        self.retry_config = retry_config
        self._config_dict = None

    @staticmethod
    def from_json(config_json: str, profile: str = DEFAULT_POSIX_PROFILE_NAME) -> "UploadClientConfig":
        config_dict = json.loads(config_json)
        return UploadClientConfig.from_dict(config_dict=config_dict, profile=profile)

    @staticmethod
    def from_yaml(config_yaml: str, profile: str = DEFAULT_POSIX_PROFILE_NAME) -> "UploadClientConfig":
        config_dict = yaml.safe_load(config_yaml)
        return UploadClientConfig.from_dict(config_dict=config_dict, profile=profile)

    @staticmethod
    def from_dict(
        config_dict: dict[str, Any],
        profile: str = DEFAULT_POSIX_PROFILE_NAME,
        skip_validation: bool = False,
    ) -> "UploadClientConfig":
        # Validate the config file with predefined JSON schema
        if not skip_validation:
            validate_config(config_dict)

        # Load config
        loader = UploadClientConfigLoader(config_dict=config_dict, profile=profile)
        config = loader.build_config()
        config._config_dict = config_dict

        return config

    @staticmethod
    def from_file(profile: str = DEFAULT_POSIX_PROFILE_NAME) -> "UploadClientConfig":
        config_dict = UploadClientConfig.read_config_file()
        profiles = config_dict.get("profiles") or {}

        if profile not in profiles and profile != DEFAULT_POSIX_PROFILE_NAME:
            raise ValueError(
                f'Profile "{profile}" not found in configuration files. Configuration was checked in '
                f"{UploadClientConfig.find_config_file() or 'MPU config (not found)'}. "
                f"Please verify that the profile exists and that configuration files are correctly located."
            )

        # the config is already validated while reading
        return UploadClientConfig.from_dict(config_dict=config_dict, profile=profile, skip_validation=True)

    @staticmethod
    def find_config_file() -> Optional[str]:
        """
        :return: The path of the configuration file in use, or ``None`` if there is none.
        """
        mpu_config = os.getenv("MPU_CONFIG", None)
        if mpu_config and os.path.exists(mpu_config):
            return mpu_config

        for path in DEFAULT_MPU_CONFIG_FILE_SEARCH_PATHS:
            if os.path.exists(path):
                return path

        return None

    @staticmethod
    def read_config_file() -> dict[str, Any]:
        """Get the MPU configuration dictionary.

        :return: The MPU configuration dictionary or empty dict if no config was found
        """
        config_file = UploadClientConfig.find_config_file()
        if config_file is None:
            return {}

        try:
            with open(config_file) as f:
                if config_file.endswith(".json"):
                    config_dict = json.load(f)
                else:
                    config_dict = yaml.safe_load(f)
        except Exception as e:
            raise ValueError(f"malformed mpu config file: {config_file}, exception: {e}")

        if config_dict:
            validate_config(config_dict)
        return config_dict or {}

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        if not state.get("_config_dict"):
            raise ValueError("UploadClientConfig is not serializable")
        del state["credentials_provider"]
        del state["storage_provider"]
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.profile = state["profile"]
        self._config_dict = state["_config_dict"]
        loader = UploadClientConfigLoader(state["_config_dict"], self.profile)
        new_config = loader.build_config()
        self.storage_provider = new_config.storage_provider
        self.storage_provider_config = new_config.storage_provider_config
        self.credentials_provider = new_config.credentials_provider
        self.slicing_config = new_config.slicing_config
        self.upload_config = new_config.upload_config
        self.retry_config = new_config.retry_config
