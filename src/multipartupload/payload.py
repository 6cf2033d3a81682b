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

import io
import os
import threading
from abc import ABC, abstractmethod
from typing import IO, Union


class Payload(ABC):
    """
    A source of bytes that can be read in arbitrary, independent byte ranges.
    """

    @property
    @abstractmethod
    def content_length(self) -> int:
        pass

    @abstractmethod
    def read(self, offset: int, size: int) -> bytes:
        """
        Reads a byte range.

        :param offset: Position of the first byte.
        :param size: Number of bytes to read.

        :return: Exactly ``size`` bytes.
        """
        pass

    def read_all(self) -> bytes:
        return self.read(0, self.content_length)

    def _check_range(self, offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > self.content_length:
            raise ValueError(
                f"Range [{offset}, {offset + size}) is outside of the payload of {self.content_length} bytes."
            )


class BytesPayload(Payload):
    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._data = memoryview(data).cast("B")

    @property
    def content_length(self) -> int:
        return len(self._data)

    def read(self, offset: int, size: int) -> bytes:
        self._check_range(offset, size)
        return self._data[offset : offset + size].tobytes()


class FilePayload(Payload):
    """
    A payload backed by a local file.

    Every read opens its own handle, so parts can be read from several threads at once.
    """

    def __init__(self, path: str):
        self._path = path
        self._content_length = os.path.getsize(path)

    @property
    def content_length(self) -> int:
        return self._content_length

    def read(self, offset: int, size: int) -> bytes:
        self._check_range(offset, size)
        with open(self._path, "rb") as fp:
            fp.seek(offset)
            data = fp.read(size)
        if len(data) != size:
            raise IOError(f"Short read from {self._path}: expected {size} bytes at {offset}, got {len(data)}.")
        return data


class StreamPayload(Payload):
    """
    A payload backed by a seekable binary stream, starting at the stream's current position.
    """

    def __init__(self, stream: IO[bytes]):
        if not stream.seekable():
            raise ValueError("Stream payloads must be seekable.")
        self._stream = stream
        self._start = stream.tell()
        self._content_length = stream.seek(0, io.SEEK_END) - self._start
        stream.seek(self._start)
        # Reads share the stream position.
        self._lock = threading.Lock()

    @property
    def content_length(self) -> int:
        return self._content_length

    def read(self, offset: int, size: int) -> bytes:
        self._check_range(offset, size)
        with self._lock:
            self._stream.seek(self._start + offset)
            data = self._stream.read(size)
        if len(data) != size:
            raise IOError(f"Short read from stream: expected {size} bytes at {offset}, got {len(data)}.")
        return data


def as_payload(source: Union[str, bytes, bytearray, memoryview, IO[bytes], Payload]) -> Payload:
    """
    Wraps an upload source into a :py:class:`Payload`.

    :param source: A local file path, a bytes-like object, a seekable binary stream or a payload.

    :raises TypeError: If the source is none of the above.
    """
    if isinstance(source, Payload):
        return source
    if isinstance(source, str):
        return FilePayload(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesPayload(source)
    if hasattr(source, "read") and hasattr(source, "seek"):
        return StreamPayload(source)
    raise TypeError(f"Unsupported upload source: {type(source).__name__}")
