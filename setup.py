"""
Setup script for pheno_eos package.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="pheno-eos",
    version="0.1.0",
    description="Phenology-gated carbon assimilation and its relation to autumn leaf senescence",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Atmospheric Science",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pandas>=1.5.0",
        "numpy>=1.20.0",
        "openpyxl>=3.0.0",
        "scipy>=1.7.0",
        "statsmodels>=0.13.0",
        "matplotlib>=3.5.0",
        "cartopy>=0.21",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "black>=21.0",
            "flake8>=3.8",
        ],
    },
    entry_points={
        "console_scripts": [
            "pheno-eos-aggregate=pheno_eos.cli:main",
            "pheno-eos-analyze=pheno_eos.cli:analyze_main",
        ],
    },
)
