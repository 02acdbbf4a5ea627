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

from kinreach.reachability.configs import (
    CacheConfig,
    CacheOptions,
    MarkerConfig,
    ToleranceConfig,
    WorkspaceConfig,
)
from kinreach.reachability.caches import CacheManager, SeedCache
from kinreach.reachability.ik_evaluator import IKEvaluator
from kinreach.reachability.reachability_analyzer import (
    CacheState,
    ReachabilityAnalyzer,
    ReachabilityAnalyzerConfig,
    load_config,
)

__all__ = [
    "CacheConfig",
    "CacheOptions",
    "MarkerConfig",
    "ToleranceConfig",
    "WorkspaceConfig",
    "CacheManager",
    "SeedCache",
    "IKEvaluator",
    "CacheState",
    "ReachabilityAnalyzer",
    "ReachabilityAnalyzerConfig",
    "load_config",
]
