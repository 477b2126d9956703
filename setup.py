"""
Setup configuration for quartz-console package.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text() if (this_directory / "README.md").exists() else ""

setup(
    name="quartz-console",
    version="0.1.0",
    description="Command-line console for managing HTTP jobs on a remote Quartz cron scheduler",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Arunath",
    author_email="umber-stack.79@icloud.com",
    url="https://github.com/arunsmiles/quartz-console",

    # Package discovery
    packages=find_packages(include=["quartz_console", "quartz_console.*"]),

    # Dependencies
    install_requires=[
        "requests>=2.31.0",
        "APScheduler>=3.10.0,<4.0",
        "python-dotenv>=1.0.0",
    ],

    # Optional dependencies
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },

    # Python version requirement
    python_requires=">=3.9",

    # CLI entry points
    entry_points={
        "console_scripts": [
            "quartz-console=quartz_console.cli:main",
        ],
    },

    # Classification
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    # Keywords
    keywords="quartz scheduler cron jobs http console",

    # Project URLs
    project_urls={
        "Bug Reports": "https://github.com/arunsmiles/quartz-console/issues",
        "Source": "https://github.com/arunsmiles/quartz-console",
    },

    # Include package data
    include_package_data=True,
)
