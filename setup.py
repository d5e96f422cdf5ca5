"""
ReportRunner - report designs rendered to paginated PDF and HTML documents
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="reportrunner",
    version="0.1.0",
    description="Programmatic report designs rendered from SQL data sources into PDF and HTML",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["core", "core.*", "api", "api.*", "d1_design", "d2_query", "d3_render", "d3_render.*", "d4_jobs"]),
    py_modules=["main"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Office/Business",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4",
            "httpx>=0.25",
        ],
        "firebird": ["sqlalchemy-firebird>=2.0", "fdb>=2.0"],
    },
    entry_points={
        "console_scripts": [
            "reportrunner=core.cli:main",
        ],
    },
    include_package_data=True,
)
