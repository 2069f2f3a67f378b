# setup.py
from setuptools import setup, find_packages

setup(
    name="quran-search",
    version="1.0.0",
    packages=find_packages(include=["quran_search", "quran_search.*"]),
    install_requires=[
        "requests>=2.28.0",
        "backoff>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=23.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "quran-search=quran_search.cli:main",
        ],
    },
    python_requires=">=3.10",
)
