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

from collections.abc import Callable, Sequence
from typing import Any, Optional, TypeVar, Union

import boto3
import botocore
from botocore.credentials import RefreshableCredentials
from botocore.exceptions import ClientError, IncompleteReadError, ReadTimeoutError, ResponseStreamingError
from botocore.session import get_session

from ..instrumentation.utils import set_span_attribute
from ..types import CompletedPart, Credentials, CredentialsProvider, RetryableError
from ..utils import split_path
from .base import BaseMultipartProvider

_T = TypeVar("_T")

BOTO3_MAX_POOL_CONNECTIONS = 32

PROVIDER = "s3"

_RETRYABLE_ERROR_CODES = {"SlowDown", "RequestTimeout", "InternalError", "ServiceUnavailable"}


class StaticS3CredentialsProvider(CredentialsProvider):
    """
    A concrete implementation of the :py:class:`multipartupload.types.CredentialsProvider` that provides static S3 credentials.
    """

    _access_key: str
    _secret_key: str
    _session_token: Optional[str]

    def __init__(self, access_key: str, secret_key: str, session_token: Optional[str] = None):
        """
        :param access_key: The access key for S3 authentication.
        :param secret_key: The secret key for S3 authentication.
        :param session_token: An optional session token for temporary credentials.
        """
        self._access_key = access_key
        self._secret_key = secret_key
        self._session_token = session_token

    def get_credentials(self) -> Credentials:
        return Credentials(
            access_key=self._access_key,
            secret_key=self._secret_key,
            token=self._session_token,
            expiration=None,
        )

    def refresh_credentials(self) -> None:
        pass


class S3MultipartProvider(BaseMultipartProvider):
    """
    A concrete implementation of the :py:class:`multipartupload.types.MultipartUploadProvider` for Amazon S3 or
    S3-compatible object stores.
    """

    def __init__(
        self,
        region_name: str = "",
        endpoint_url: str = "",
        base_path: str = "",
        credentials_provider: Optional[CredentialsProvider] = None,
        **kwargs: Any,
    ) -> None:
        """
        :param region_name: The AWS region where the S3 bucket is located.
        :param endpoint_url: The custom endpoint URL for the S3 service.
        :param base_path: The bucket, optionally followed by a prefix, where all operations will be scoped.
        :param credentials_provider: The provider to retrieve S3 credentials.
        """
        super().__init__(base_path=base_path, provider_name=PROVIDER)

        self._region_name = region_name
        self._endpoint_url = endpoint_url
        self._credentials_provider = credentials_provider

        self._s3_client = self._create_s3_client(
            max_pool_connections=kwargs.get("max_pool_connections", BOTO3_MAX_POOL_CONNECTIONS),
            connect_timeout=kwargs.get("connect_timeout"),
            read_timeout=kwargs.get("read_timeout"),
            retries=kwargs.get("retries"),
        )

    def _create_s3_client(
        self,
        max_pool_connections: int = BOTO3_MAX_POOL_CONNECTIONS,
        connect_timeout: Union[float, int, None] = None,
        read_timeout: Union[float, int, None] = None,
        retries: Optional[dict[str, Any]] = None,
    ):
        """
        Creates and configures the boto3 S3 client, using refreshable credentials if possible.

        :param max_pool_connections: The maximum number of connections to keep in a connection pool.
        :param connect_timeout: The time in seconds till a timeout exception is thrown when attempting to make a connection.
        :param read_timeout: The time in seconds till a timeout exception is thrown when attempting to read from a connection.
        :param retries: A dictionary for configuration related to retry behavior.

        :return: The configured S3 client.
        """
        options: dict[str, Any] = {
            # https://botocore.amazonaws.com/v1/documentation/api/latest/reference/config.html
            "config": botocore.config.Config(  # pyright: ignore[reportAttributeAccessIssue]
                max_pool_connections=max_pool_connections,
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries=retries or {"mode": "standard"},
            ),
        }

        if self._region_name:
            options["region_name"] = self._region_name

        if self._endpoint_url:
            options["endpoint_url"] = self._endpoint_url

        if self._credentials_provider:
            creds = self._fetch_credentials()
            if "expiry_time" in creds and creds["expiry_time"]:
                # Use RefreshableCredentials if expiry_time provided.
                refreshable_credentials = RefreshableCredentials.create_from_metadata(
                    metadata=creds, refresh_using=self._fetch_credentials, method="custom-refresh"
                )

                botocore_session = get_session()
                botocore_session._credentials = refreshable_credentials

                boto3_session = boto3.Session(botocore_session=botocore_session)

                return boto3_session.client("s3", **options)
            else:
                options["aws_access_key_id"] = creds["access_key"]
                options["aws_secret_access_key"] = creds["secret_key"]
                if creds["token"]:
                    options["aws_session_token"] = creds["token"]

        # Fallback to standard credential chain.
        return boto3.client("s3", **options)

    def _fetch_credentials(self) -> dict:
        if not self._credentials_provider:
            raise RuntimeError("Cannot fetch credentials if no credential provider configured.")
        self._credentials_provider.refresh_credentials()
        credentials = self._credentials_provider.get_credentials()
        return {
            "access_key": credentials.access_key,
            "secret_key": credentials.secret_key,
            "token": credentials.token,
            "expiry_time": credentials.expiration,
        }

    def _translate_errors(self, func: Callable[[], _T], operation: str, bucket: str, key: str) -> _T:
        """
        Runs an S3 call and maps botocore failures onto the error types the uploader understands.

        :param func: The function that performs the actual S3 call.
        :param operation: The type of operation being performed (e.g., "UPLOAD_PART").
        :param bucket: The name of the S3 bucket involved in the operation.
        :param key: The key of the object within the S3 bucket.

        :return: The result of ``func``.
        """
        try:
            return func()
        except ClientError as error:
            status_code = error.response["ResponseMetadata"]["HTTPStatusCode"]
            request_id = error.response["ResponseMetadata"].get("RequestId")
            host_id = error.response["ResponseMetadata"].get("HostId")
            error_code = error.response["Error"]["Code"]

            set_span_attribute("request_id", request_id)
            set_span_attribute("host_id", host_id)
            set_span_attribute("status_code", status_code)

            error_info = f"request_id: {request_id}, host_id: {host_id}, status_code: {status_code}"

            if error_code == "NoSuchUpload":
                raise FileNotFoundError(f"Multipart upload of {bucket}/{key} no longer exists. {error_info}") from error
            elif error_code in _RETRYABLE_ERROR_CODES or status_code == 429 or status_code >= 500:
                raise RetryableError(
                    f"Failed to {operation} {bucket}/{key} ({error_code}), retry possible. {error_info}"
                ) from error
            elif status_code == 404:
                raise FileNotFoundError(f"Bucket or object {bucket}/{key} does not exist. {error_info}") from error
            else:
                raise RuntimeError(
                    f"Failed to {operation} {bucket}/{key} ({error_code}). {error_info}, "
                    f"error_type: {type(error).__name__}"
                ) from error
        except (ReadTimeoutError, IncompleteReadError, ResponseStreamingError) as error:
            raise RetryableError(
                f"Failed to {operation} {bucket}/{key} due to network timeout or incomplete read. "
                f"error_type: {type(error).__name__}"
            ) from error

    def _put_object(self, path: str, body: bytes) -> str:
        bucket, key = split_path(path)

        def _invoke_api() -> str:
            response = self._s3_client.put_object(Bucket=bucket, Key=key, Body=body)
            return response["ETag"].strip('"')

        return self._translate_errors(_invoke_api, operation="PUT", bucket=bucket, key=key)

    def _initiate_multipart_upload(self, path: str) -> str:
        bucket, key = split_path(path)

        def _invoke_api() -> str:
            response = self._s3_client.create_multipart_upload(Bucket=bucket, Key=key)
            return response["UploadId"]

        return self._translate_errors(_invoke_api, operation="INITIATE", bucket=bucket, key=key)

    def _upload_part(self, path: str, upload_id: str, part_number: int, body: bytes) -> str:
        bucket, key = split_path(path)

        def _invoke_api() -> str:
            response = self._s3_client.upload_part(
                Bucket=bucket, Key=key, UploadId=upload_id, PartNumber=part_number, Body=body
            )
            return response["ETag"].strip('"')

        return self._translate_errors(_invoke_api, operation="UPLOAD_PART", bucket=bucket, key=key)

    def _complete_multipart_upload(self, path: str, upload_id: str, parts: Sequence[CompletedPart]) -> str:
        bucket, key = split_path(path)

        def _invoke_api() -> str:
            response = self._s3_client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [{"PartNumber": part.part_number, "ETag": f'"{part.etag}"'} for part in parts]
                },
            )
            return response["ETag"].strip('"')

        return self._translate_errors(_invoke_api, operation="COMPLETE", bucket=bucket, key=key)

    def _abort_multipart_upload(self, path: str, upload_id: str) -> None:
        bucket, key = split_path(path)

        def _invoke_api() -> None:
            self._s3_client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)

        self._translate_errors(_invoke_api, operation="ABORT", bucket=bucket, key=key)
