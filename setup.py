"""
Setup script for aleph-cli.

aleph is an adaptive terminal drill for the Persian alphabet. It tracks
mastery per letter and per positional form, introduces new letters in
groups, and mixes letter drills with whole-word reading once enough
letters are known.

The 'aleph' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="aleph-cli",
    version="1.0.0",
    description="Adaptive Persian alphabet and vocabulary drills for the terminal",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="aleph contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    package_data={"src.content": ["data/*.json"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
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
            "aleph=src.delivery.drill_cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning alphabet persian spaced-repetition cli education",
)
