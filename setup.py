"""
Setup script for moth_survival package.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read README for long description
readme_file = Path(__file__).parent / "README_PACKAGE.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="moth-survival",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Adult moth survival under acclimation and exposure temperatures: half-day intervals and Cox model selection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/moth-survival",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pandas>=1.3.0",
        "numpy>=1.20.0",
        "openpyxl>=3.0.0",
        "lifelines>=0.27.0",
        "scipy>=1.7.0",
        "statsmodels>=0.13.0",
        "matplotlib>=3.3.0",
        "seaborn>=0.12.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "black>=21.0",
            "flake8>=3.8",
        ],
        "test": [
            "pytest>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "moth-survival=moth_survival.cli:main",
        ],
    },
)
