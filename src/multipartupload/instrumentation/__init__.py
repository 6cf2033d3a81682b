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
import threading
from typing import Any, Optional

from opentelemetry import metrics, trace

try:
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    _RESOURCE = Resource.create(
        {
            "service.name": "multipartupload",
            "service.namespace": "client",
        }
    )

    HAS_OBSERVABILITY_DEPS = True
except ImportError:
    HAS_OBSERVABILITY_DEPS = False

from ..utils import import_class

logger = logging.getLogger(__name__)

_setup_lock = threading.Lock()
_IS_SETUP_DONE = False


def _create_exporter(exporter_dict: Optional[dict[str, Any]], default: Any) -> Any:
    if not exporter_dict:
        return default()
    module_name, class_name = exporter_dict["type"].rsplit(".", 1)
    cls = import_class(class_name, module_name)
    return cls(**exporter_dict.get("options", {}))


def _setup_opentelemetry_impl(config: dict[str, Any]) -> None:
    global _IS_SETUP_DONE

    with _setup_lock:
        # Global providers can only be set once per process.
        if _IS_SETUP_DONE:
            return

        trace_config_dict = config.get("traces")
        metric_config_dict = config.get("metrics")

        if trace_config_dict is not None:
            exporter = _create_exporter(trace_config_dict.get("exporter"), ConsoleSpanExporter)
            tracer_provider = TracerProvider(resource=_RESOURCE)
            tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(tracer_provider)

        if metric_config_dict is not None:
            exporter = _create_exporter(metric_config_dict.get("exporter"), ConsoleMetricExporter)
            metric_reader = PeriodicExportingMetricReader(exporter)
            metrics.set_meter_provider(MeterProvider(resource=_RESOURCE, metric_readers=[metric_reader]))

        _IS_SETUP_DONE = True


def setup_opentelemetry(config: dict[str, Any]) -> None:
    """
    Setup global OpenTelemetry providers for trace/metrics.
    When the OpenTelemetry SDK is not installed, this becomes a no-op function.

    :param config: The ``opentelemetry`` section of the configuration.
    """
    if not HAS_OBSERVABILITY_DEPS:
        logger.warning(
            "Instrumentation dependencies not available. Skipping OpenTelemetry setup. "
            "To enable OpenTelemetry features, install the optional dependency: "
            "pip install multipart-upload[observability-otel]"
        )
        return

    _setup_opentelemetry_impl(config)
