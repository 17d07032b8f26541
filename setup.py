from setuptools import setup, find_packages

setup(
    name="tburn-tokens",
    version="0.1.0",
    description="Token factory deployment and registry for the TBURN chain",
    packages=find_packages(include=["tburn_tokens", "tburn_tokens.*"]),
    install_requires=[
        "web3>=6.0.0",
        "eth-abi>=4.0.0",
        "eth-utils>=2.0.0",
        "aiohttp>=3.8.0",
        "jsonschema>=4.0.0",
        "sqlalchemy>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "eth-account>=0.8.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "tburn-tokens=tburn_tokens.main:run",
        ],
    },
)
