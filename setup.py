# eventsocket/setup.py

from setuptools import setup, find_packages

setup(
    name="eventsocket",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"eventsocket": ["config/*.yml"]},
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "structlog>=23.1",
        "python-json-logger>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.9",
    description="asyncio client and server for the Event Socket telephony control protocol",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Topic :: Communications :: Telephony",
    ],
)
