from setuptools import setup, find_packages

setup(
    name="wirerpc",
    version="0.1.0",
    description="WireRPC - bidirectional JSON-RPC style client over TLS streams and ZeroMQ",
    author="WireRPC Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "protobuf>=3.19.0",
        "pyzmq>=24.0.0",
        "opentelemetry-api>=1.14.0",
        "opentelemetry-sdk>=1.14.0",
        "opentelemetry-exporter-otlp>=1.14.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
    },
    python_requires=">=3.9",
)
