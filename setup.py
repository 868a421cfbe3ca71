"""Setup configuration for tablelist package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Read requirements from requirements.txt; a "# Development dependencies"
# comment starts the dev section
core_requirements = []
dev_requirements = []
dev_section = False

with open(this_directory / "requirements.txt", "r", encoding="utf-8") as f:
    for line in f:
        line = line.strip()
        if line.startswith("#"):
            if "Development dependencies" in line:
                dev_section = True
            continue
        line = line.split("#")[0].strip()
        if not line:
            continue
        if dev_section:
            dev_requirements.append(line)
        else:
            core_requirements.append(line)

setup(
    name="tablelist",
    version="1.0.0",
    author="tablelist developers",
    description="Print the tables a database account can see as a fixed-width report",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
        "Topic :: Utilities",
    ],
    python_requires=">=3.9",
    install_requires=core_requirements,
    extras_require={
        "dev": dev_requirements,
        "postgresql": ["psycopg2-binary>=2.9.9"],
        "mysql": ["PyMySQL>=1.1.0"],
    },
    entry_points={
        "console_scripts": [
            "tablelist=tablelist.cli:main",
        ],
    },
    zip_safe=False,
    keywords=[
        "database",
        "information schema",
        "tables",
        "sqlalchemy",
        "cli",
    ],
)
