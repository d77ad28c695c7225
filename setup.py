#!/usr/bin/env python

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from setuptools import find_packages, setup

# Core dependencies required for all installations
install_requires = [
    "boto3==1.38.36",  # Bedrock, S3, CloudWatch and DynamoDB
    "PyYAML==6.0.2",  # Packaged default configuration
]

# Optional dependencies by component
extras_require = {
    # Core utilities only - minimal dependencies
    "core": [],
    # Image handling dependencies
    "image": [
        "Pillow==11.2.1",
    ],
    # Document fetching and sampling dependencies
    "documents": [
        "Pillow==11.2.1",
        "PyMuPDF==1.25.5",  # PDF text sampling
        "pandas==2.2.3",  # Spreadsheet sampling
        "openpyxl==3.1.5",  # Excel engine for pandas
        "requests==2.32.4",  # Fetching documents by URL
    ],
    # Testing dependencies
    "test": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "pytest-xdist>=3.3.1",  # For parallel test execution
        "requests>=2.32.3,<3.0.0",
        "Pillow==11.2.1",
        "PyMuPDF==1.25.5",
        "pandas==2.2.3",
        "openpyxl==3.1.5",
    ],
    # Full package with all dependencies
    "all": [
        "Pillow==11.2.1",
        "PyMuPDF==1.25.5",
        "pandas==2.2.3",
        "openpyxl==3.1.5",
        "requests==2.32.4",
    ],
}

setup(
    name="menu_extraction",
    version="0.1.0",
    packages=find_packages(include=["menu_extraction", "menu_extraction.*"]),
    package_data={"menu_extraction": ["config/*.yaml"]},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require=extras_require,
)
