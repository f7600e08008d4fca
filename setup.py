from setuptools import setup, find_packages

setup(
    name="legacyparity",
    version="1.0.0",
    description="Differential validation of AI-modernized legacy programs",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests>=2.31.0",
        "jsonschema>=4.20.0",
        "boto3>=1.34.0",
        "botocore>=1.34.0",
        "click>=8.1.7",
        "fastapi>=0.110.0",
        "pydantic>=2.5.0",
        "uvicorn>=0.27.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "legacyparity=legacyparity.cli:main",
        ],
    },
    python_requires=">=3.10",
)
