# ----------------------------------------------------------------------------
# Copyright (c) 2021-2025 DexForce Technology Co., Ltd.
#
# All rights reserved.
# ----------------------------------------------------------------------------

import logging
import os
import shutil
import sys
from os import path as osp
from pathlib import Path

from setuptools import Command, find_packages, setup

logging.basicConfig(stream=sys.stderr, level=logging.INFO)
logger = logging.getLogger()

THIS_DIR = Path(__file__).resolve().parent


class CleanCommand(Command):
    description = "Delete build, dist, *.egg-info and all __pycache__ directories."
    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        for d in ["build", "dist", "kinreach.egg-info"]:
            rm_path = THIS_DIR / d
            if not rm_path.exists():
                continue
            shutil.rmtree(rm_path, ignore_errors=True)
            logger.info(f"removed '{rm_path}'")

        for pdir, sdirs, filenames in os.walk(THIS_DIR):
            for sdir in sdirs:
                if sdir == "__pycache__":
                    rm_path = Path(pdir) / sdir
                    shutil.rmtree(str(rm_path), ignore_errors=True)
                    logger.info(f"removed '{rm_path}'")


# Extract version
here = osp.abspath(osp.dirname(__file__))
version = None
with open(os.path.join(os.path.dirname(__file__), "VERSION")) as f:
    full_version = f.read().strip()
    version = ".".join(full_version.split(".")[:3])

setup(
    name="kinreach",
    version=version,
    author="Dexforce",
    description="Workspace reachability analysis and IK seed caching for robot arms.",
    packages=find_packages(exclude=["docs", "tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy",
        "torch",
        "tqdm",
    ],
    extras_require={
        "vis": ["open3d", "matplotlib"],
        "tests": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "kinreach-reachability=kinreach.scripts.reachability:main",
        ],
    },
    cmdclass={"clean": CleanCommand},
    include_package_data=True,
)
