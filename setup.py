#!/usr/bin/env python

from setuptools import find_namespace_packages, setup


VERSION = "0.1a1"

setup(
    name="xmlbridge",
    version=VERSION,
    description=(
        "Converts between XML trees and an order-preserving parsed document form."
    ),
    license="AGPL-3.0-or-later",
    packages=find_namespace_packages(include=["_xmlbridge*", "xmlbridge*"]),
    python_requires=">=3.10",
    install_requires=["httpx", "lxml"],
    extras_require={
        "https-loader": ["h2"],
        "test": ["pytest", "pytest-httpx"],
    },
)
