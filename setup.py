"""
Setup script for adaptive-review.

The adaptive review engine decides when a learner should see each quiz
item again. It provides:

1. Scheduling algorithms - SM-2 and Leitner boxes behind one interface
2. Learner models - forgetting-curve retention, item difficulty, weak topics
3. Orchestration - next-item selection and response routing

Persistence, authentication and presentation belong to the calling
application; the engine is pure, synchronous, in-memory computation.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="adaptive-review",
    version="1.0.0",
    description="Spaced-repetition scheduling engine with SM-2, Leitner and learner models",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    python_requires=">=3.10",
    install_requires=[
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition sm2 leitner education",
)
