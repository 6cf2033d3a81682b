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

import os
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any, Optional

from opentelemetry import metrics, trace
from opentelemetry.trace import StatusCode, Tracer

METER = metrics.get_meter("opentelemetry.instrumentation.multipartupload")
TRACER: Tracer = trace.get_tracer("opentelemetry.instrumentation.multipartupload")

REQUEST_COUNTER = METER.create_counter(
    name="multipartupload_request_count",
    description="Counts the requests sent to a storage provider (e.g., INITIATE, UPLOAD_PART, COMPLETE).",
)

DATA_SIZE_COUNTER = METER.create_counter(
    name="multipartupload_data_size",
    unit="By",
    description="Counts the bytes successfully sent to a storage provider.",
)

DURATION_HISTOGRAM = METER.create_histogram(
    name="multipartupload_request_duration",
    unit="ms",
    description="Measures the duration of storage provider requests in milliseconds.",
)

DEFAULT_ATTRIBUTES: Mapping[str, Any] = {"proc_id": os.getpid()}


class ProviderMetricsHelper:
    """
    A helper class to record request metrics of a storage provider.
    """

    def __init__(self, provider_name: str, attributes: Mapping[str, Any] = DEFAULT_ATTRIBUTES) -> None:
        self._attributes = {**attributes, "provider": provider_name}

    def record(self, operation: str, duration: float, success: bool, data_size: Optional[int] = None) -> None:
        """
        :param operation: The operation performed (e.g., UPLOAD_PART).
        :param duration: Duration of the request in seconds.
        :param success: True if the request succeeded.
        :param data_size: Bytes sent by the request, if any.
        """
        attributes = {**self._attributes, "operation": operation, "success": success}
        REQUEST_COUNTER.add(1, attributes=attributes)
        DURATION_HISTOGRAM.record(duration * 1000, attributes=attributes)
        if success and data_size:
            DATA_SIZE_COUNTER.add(data_size, attributes=attributes)


def set_span_attribute(attribute_name: str, attribute_value: Any) -> None:
    """
    Safely sets an attribute on the current span, if both span and attribute value exist.

    :param attribute_name: The name of the attribute to set
    :param attribute_value: The value of the attribute to set
    """
    if attribute_value is not None:
        span = trace.get_current_span()
        if span is not None:
            span.set_attribute(attribute_name, attribute_value)


def _generic_tracer(func: Callable, class_name: str) -> Callable:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        full_function_name = f"{class_name}.{func.__name__}"
        with TRACER.start_as_current_span(full_function_name) as span:  # pyright: ignore[reportCallIssue,reportAttributeAccessIssue]
            span.set_attribute("function_name", full_function_name)
            for k, v in DEFAULT_ATTRIBUTES.items():
                span.set_attribute(k, v)
            try:
                result = func(*args, **kwargs)
                span.set_status(StatusCode.OK)
                return result
            except Exception as e:
                span.set_status(StatusCode.ERROR, f"Exception: {str(e)}")
                span.record_exception(e)
                raise

    return wrapper


def instrumented(cls: Any) -> Any:
    """
    A class decorator that wraps every public method of the class in a tracing span.

    :param cls: The class to be instrumented.
    :return: The class with its public methods wrapped by the generic tracer.
    """
    class_name = cls.__name__
    for attr_name, attr_value in list(cls.__dict__.items()):
        if callable(attr_value) and not attr_name.startswith("_"):
            setattr(cls, attr_name, _generic_tracer(attr_value, class_name))
    return cls
