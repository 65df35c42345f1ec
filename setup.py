"""
Setup script for cadence-core.

Cadence is the adaptive scheduling core of a language-learning system:

1. Ability estimation - IRT theta per skill dimension, adaptive item selection
2. Memory scheduling - FSRS-4 stability/difficulty with mastery stages
3. Prioritisation - value/cost ranking boosted by review urgency

The 'cadence' command is a small operator CLI over JSON learner snapshots.
"""

from setuptools import find_packages, setup

setup(
    name="cadence-core",
    version="1.0.0",
    description="Adaptive scheduling core: IRT ability estimation, FSRS scheduling and priority queues",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Cadence",
    packages=find_packages(include=["cadence", "cadence.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Numerics
        "numpy>=1.24.0",
        # Caching
        "cachetools>=5.3.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cadence=cadence.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition irt fsrs scheduling education",
)
