"""Setup configuration for testsum."""

from setuptools import setup, find_packages

setup(
    name="testsum",
    version="0.1.0",
    description="Summarize, format and rerun failures of go test -json output",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "testsum=testsum.cli:main",
        ],
    },
)
