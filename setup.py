#!/usr/bin/env python
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install

with open("src/openwebnet_tx/version.py") as fh:
    for line in fh:
        if line.strip().startswith("__version__"):
            VERSION = line.split("=")[-1].strip().strip("\"'")
            break

URL = "https://github.com/openwebnet-py/openwebnet"

with open("README.md") as fh:
    LONG_DESCRIPTION = fh.read()

with open("requirements.txt") as fh:
    REQUIREMENTS = [r.strip() for r in fh if r.strip() and not r.startswith("#")]


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("CIRCLE_TAG")
        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this pkg: {VERSION}"
            sys.exit(info)


setup(
    name="openwebnet",
    description="An asyncio client for BTicino/Legrand OpenWebNet gateways (BUS & USB).",
    keywords=["openwebnet", "bticino", "legrand", "myhome", "zigbee"],
    url=URL,
    download_url=f"{URL}/archive/{VERSION}.tar.gz",
    install_requires=REQUIREMENTS,
    extras_require={
        "tests": ["pytest>=7.4", "pytest-asyncio>=0.23"],
        "dev": ["debugpy"],
    },
    entry_points={
        "console_scripts": ["openwebnet = openwebnet_cli.client:main"],
    },
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["openwebnet_*"]),
    version=VERSION,
    license="MIT",
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.11",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
