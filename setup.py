"""Setup configuration for step-foundry package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = (
    readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""
)

setup(
    name="step-foundry",
    version="1.0.0",
    description="Chunk-oriented batch step engine with pluggable sources, sinks and checkpoints",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Tony Sebion",
    url="https://github.com/tonysebion/step-foundry",
    packages=find_packages(exclude=["tests", "tests.*", "docs", "docs.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.0.0",  # Settings validation
        "pydantic-settings>=2.0.0",  # STEP_* environment overrides
        "python-dotenv>=1.0.0",  # .env loading for settings files
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
            "mypy>=0.990",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="data-engineering batch chunk-processing etl data-pipeline checkpoints",
)
