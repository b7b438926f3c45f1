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

from __future__ import annotations

import pytest

from dfsresolve.clock import FakeClock
from dfsresolve.identity import IdentityContext
from dfsresolve.namespace import InMemoryNamespace
from tests.helpers.namespace import seed


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fresh FakeClock driving namespace modification times."""
    return FakeClock()


@pytest.fixture
def namespace(clock: FakeClock) -> InMemoryNamespace:
    """Provide an in-memory namespace holding the ``/data`` sample tree."""
    ns = InMemoryNamespace(clock=clock)
    seed(ns)
    return ns


@pytest.fixture
def identity(namespace: InMemoryNamespace) -> IdentityContext:
    """Provide an identity context whose default principal is ``bob``."""
    return IdentityContext(namespace, default_principal="bob")
