# ----------------------------------------------------------------------------
# Copyright (c) 2021-2025 DexForce Technology Co., Ltd.
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
# ----------------------------------------------------------------------------

from .tolerance_config import ToleranceConfig
from .workspace_config import WorkspaceConfig
from .cache_config import CacheConfig, CacheOptions
from .marker_config import MarkerConfig

__all__ = [
    "ToleranceConfig",
    "WorkspaceConfig",
    "CacheConfig",
    "CacheOptions",
    "MarkerConfig",
]
