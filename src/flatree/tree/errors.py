# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Exceptions raised by the forest builder."""

from __future__ import annotations

from typing import Any


class FlatreeError(Exception):
    """Base class for all flatree errors."""

    pass


class OrphanNodeError(FlatreeError):
    """A record references a parent key that is not in the input."""

    def __init__(self, node_key: Any, parent_key: Any):
        self.node_key = node_key
        self.parent_key = parent_key
        super().__init__(
            f"node {node_key!r} references missing parent {parent_key!r}"
        )


class BuilderConfigError(FlatreeError, ValueError):
    """Raised when a TreeBuilder is given an invalid option."""

    pass


class RecordLoadError(FlatreeError):
    """Raised when a record file cannot be read or validated."""

    pass
