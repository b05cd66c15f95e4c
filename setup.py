#
# Copyright 2024 vlcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

from setuptools import setup, find_packages

ALL_PROGRAM_ENTRIES = ["vlcbuild = vlcbuild.cli:main"]

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="vlcbuild",
    version="0.1.0",
    description="Build a fully static libVLC for macOS, iOS and tvOS.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="vlcbuild Project Authors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "vlcbuild": [
            "templates/init/copier.yml",
            "templates/init/extensions/*.py",
            "templates/init/template/*.jinja",
        ],
    },
    install_requires=[
        "copier>=9.2.0",
        "copier-templates-extensions>=0.3.0",
        'tomli>=2.0.0; python_version < "3.11"',
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Operating System :: MacOS :: MacOS X",
    ],
    zip_safe=False,
    entry_points={"console_scripts": ALL_PROGRAM_ENTRIES},
)
