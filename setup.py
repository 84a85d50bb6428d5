#!/usr/bin/env python3
"""
Setup script for fedhe, secure weighted aggregation for federated learning
"""

from setuptools import setup, find_packages
import os

# Read README if it exists
long_description = "fedhe: CKKS homomorphic encryption and weighted aggregation for federated learning"
readme_path = os.path.join(os.path.dirname(__file__), "README.md")
if os.path.exists(readme_path):
    with open(readme_path, "r", encoding="utf-8") as fh:
        long_description = fh.read()

setup(
    name="fedhe",
    version="1.0.0",
    description="fedhe: CKKS homomorphic encryption and weighted aggregation for federated learning",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "docs"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21.0",
        "openfhe>=1.2.0",
        "pandas>=1.3.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
            "black>=21.0.0",
            "flake8>=3.8.0",
            "mypy>=0.900",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords="federated-learning, homomorphic-encryption, ckks, secure-aggregation, cryptography",
)
