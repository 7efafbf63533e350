"""Setup script for geotracker package."""

from setuptools import setup, find_packages

setup(
    name="geotracker",
    version="0.1.0",
    description="Last-known-position registry with HTTP ingest and snapshot API",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "flask>=2.3.0",
        "flask-cors>=4.0.0",
        "pytz>=2023.3",
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "geotracker=geotracker.main:main",
            "geotracker-watch=geotracker.main:watch",
        ],
    },
)
