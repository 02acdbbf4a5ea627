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

import torch
from typing import Optional, Sequence

__all__ = ["JointSeedSampler"]


class JointSeedSampler:
    """Uniform random joint configurations within joint limits.

    Uses its own ``torch.Generator`` so a fixed seed reproduces the same
    sequence of restarts regardless of global RNG state.
    """

    def __init__(self, seed: int = 42, device: Optional[torch.device] = None):
        self.seed = seed
        self.device = device or torch.device("cpu")
        self.generator = torch.Generator(device=self.device)
        self.generator.manual_seed(seed)

    def reset(self) -> None:
        self.generator.manual_seed(self.seed)

    def sample(
        self,
        lower: Sequence[float],
        upper: Sequence[float],
        num_samples: int = 1,
    ) -> torch.Tensor:
        """Sample joint vectors of shape (num_samples, num_joints)."""
        lower = torch.as_tensor(lower, dtype=torch.float64, device=self.device)
        upper = torch.as_tensor(upper, dtype=torch.float64, device=self.device)
        if lower.shape != upper.shape:
            raise ValueError(
                f"Joint limit shapes differ: {tuple(lower.shape)} vs {tuple(upper.shape)}"
            )
        if torch.any(upper < lower):
            raise ValueError("Upper joint limits must not be below lower limits")

        rand = torch.rand(
            (num_samples, lower.shape[0]),
            generator=self.generator,
            dtype=torch.float64,
            device=self.device,
        )
        return lower + rand * (upper - lower)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(seed={self.seed})"
