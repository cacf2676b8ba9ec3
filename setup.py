# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- CONFIG & MODELS ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",

    # --- HTTP ---
    "httpx>=0.27.0",  # Backend and billing REST clients
]

extras_require = {
    # --- TESTS---
    "test": [
        "pytest-asyncio==1.3.0",
        "pytest",
    ],
}

setup(
    name="launchgate",
    version="0.3.0",
    description="Launch and subscription gating state machine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "launchgate=launchgate.main:run",
        ],
    },
    python_requires=">=3.11",
)
