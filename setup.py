"""
Setup configuration for ormscan.
"""

from setuptools import setup, find_packages
from pathlib import Path

README = Path(__file__).parent / "README.md"
long_description = README.read_text() if README.exists() else ""

setup(
    name="ormscan",
    version="1.0.0",
    description="Static analyzer for TypeORM entity and repository API usage in TypeScript",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="ormscan",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "tree-sitter>=0.23.0",
        "tree-sitter-typescript>=0.23.0",
        "click>=8.1.0",
        "python-dotenv>=1.0.0",
        "pathspec>=0.11.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ormscan=ormscan.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Quality Assurance",
    ],
)
