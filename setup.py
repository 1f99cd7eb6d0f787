"""Setup file for development installation."""

from setuptools import setup, find_namespace_packages

setup(
    name="algomentor",
    version="0.1.0",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "pydantic>=2.0",
        "structlog",
        "google-generativeai",
        "google-api-core",
        "httpx",
        "python-dotenv",
        "prometheus-client",
        "opentelemetry-instrumentation-fastapi",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
